"""Square-root extended Kalman filter for a single-track vehicle model.

The state is ``(vx, vy, yaw_rate)``, the input is ``(steering_angle,
longitudinal_acceleration)`` and the six model parameters are
``(cf, cr, lf, lr, iz, m)``: front and rear cornering stiffness, distances
of the axles from the centre of gravity, yaw inertia and mass.

The filter measures ``(yaw_rate, vx)``. Covariances are carried as lower
triangular square-root factors ``S`` with ``P == S @ S.T``.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from poseekf.linalg import chol_psd, linsolve, qr_r

__all__ = [
    "MEASUREMENT_JACOBIAN",
    "FilterStep",
    "ExtendedKalmanFilter",
    "state_transition",
    "state_jacobian",
    "predict_sqrt",
    "correct_state_and_sqrt_covariance",
    "correct_sqrt",
]

STATE_SIZE = 3
MEASUREMENT_SIZE = 2

# Maps the state (vx, vy, yaw_rate) onto the measurement (yaw_rate, vx).
MEASUREMENT_JACOBIAN = np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]])
MEASUREMENT_JACOBIAN.flags.writeable = False


class FilterStep(NamedTuple):
    """State estimate and square-root covariance after a filter step."""

    state: np.ndarray
    sqrt_covariance: np.ndarray


def _vector(value, size: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float).ravel()
    if arr.size != size:
        raise ValueError(f"{name} must have {size} elements, got {arr.size}")
    return arr.copy()


def _matrix(value, shape: tuple[int, int], name: str) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {arr.shape}")
    return arr


def state_transition(x, u, parameters, dt) -> np.ndarray:
    """Advance the state ``(vx, vy, yaw_rate)`` by one time step ``dt``."""
    vx, vy, yaw_rate = _vector(x, STATE_SIZE, "x")
    steer, accel = _vector(u, 2, "u")
    cf, cr, lf, lr, iz, m = _vector(parameters, 6, "parameters")
    dt = np.float64(dt)

    lateral_inertia = vx * m
    front_moment = cf * lf
    coupling = dt * (front_moment - cr * lr)
    yaw_inertia = vx * iz
    with np.errstate(divide="ignore", invalid="ignore"):
        vy_next = (
            (lateral_inertia * vy + coupling * yaw_rate)
            - dt * cf * steer * vx
            - dt * m * (vx * vx) * yaw_rate
        ) / (lateral_inertia - dt * (cf + cr))
        yaw_rate_next = (
            (yaw_inertia * yaw_rate + coupling * vy) - dt * (front_moment * steer * vx)
        ) / (yaw_inertia - dt * (lf * lf * cf + lr * lr * cr))
    return np.array([vx + dt * accel, vy_next, yaw_rate_next])


def state_jacobian(x, u, parameters, dt) -> np.ndarray:
    """Jacobian of :func:`state_transition` with respect to the state."""
    vx, vy, yaw_rate = _vector(x, STATE_SIZE, "x")
    steer, _ = _vector(u, 2, "u")
    cf, cr, lf, lr, iz, m = _vector(parameters, 6, "parameters")
    dt = np.float64(dt)

    lateral_inertia = vx * m
    yaw_inertia = vx * iz
    coupling = dt * (cf * lf - cr * lr)
    centripetal = dt * m * (vx * vx)

    jac = np.zeros((STATE_SIZE, STATE_SIZE))
    jac[0, 0] = 1.0
    with np.errstate(divide="ignore", invalid="ignore"):
        denom_lat = lateral_inertia - dt * (cf + cr)
        denom_yaw = yaw_inertia - dt * (lf * lf * cf + lr * lr * cr)

        steer_lat = dt * cf * steer
        jac[1, 0] = (
            ((vy * m - steer_lat) - 2.0 * dt * m * vx * yaw_rate) * denom_lat
            - m * (((lateral_inertia * vy + coupling * yaw_rate) - steer_lat * vx) - centripetal * yaw_rate)
        ) / (denom_lat * denom_lat)
        jac[1, 1] = lateral_inertia / denom_lat
        jac[1, 2] = (coupling - centripetal) / denom_lat

        steer_yaw = dt * lf * cf * steer
        jac[2, 0] = (
            (yaw_rate * iz - steer_yaw) * denom_yaw
            - iz * ((yaw_inertia * yaw_rate + coupling * vy) - steer_yaw * vx)
        ) / (denom_yaw * denom_yaw)
        jac[2, 1] = coupling / denom_yaw
        jac[2, 2] = yaw_inertia / denom_yaw
    return jac


def predict_sqrt(sqrt_process_noise, x, s, u, parameters, dt) -> FilterStep:
    """Predict the state and its square-root covariance one step ahead."""
    q = _matrix(sqrt_process_noise, (STATE_SIZE, STATE_SIZE), "sqrt process noise")
    s = _matrix(s, (STATE_SIZE, STATE_SIZE), "sqrt covariance")
    jac = state_jacobian(x, u, parameters, dt)
    x_next = state_transition(x, u, parameters, dt)
    r = qr_r(np.vstack([(jac @ s).T, q.T]))
    return FilterStep(x_next, r.T.copy())


def correct_state_and_sqrt_covariance(x, s, residue, pxy, sy, h, r_sqrt) -> FilterStep:
    """Apply a measurement update given the innovation quantities.

    ``pxy`` is the state/measurement cross covariance, ``sy`` the lower
    square-root of the innovation covariance, ``h`` the measurement Jacobian
    and ``r_sqrt`` the square-root of the measurement noise. The covariance is
    updated in Joseph form.
    """
    x = _vector(x, STATE_SIZE, "x")
    s = _matrix(s, (STATE_SIZE, STATE_SIZE), "sqrt covariance")
    residue = _vector(residue, MEASUREMENT_SIZE, "residue")
    pxy = _matrix(pxy, (STATE_SIZE, MEASUREMENT_SIZE), "cross covariance")
    sy = _matrix(sy, (MEASUREMENT_SIZE, MEASUREMENT_SIZE), "sqrt innovation covariance")
    h = _matrix(h, (MEASUREMENT_SIZE, STATE_SIZE), "measurement jacobian")
    r_sqrt = _matrix(r_sqrt, (MEASUREMENT_SIZE, MEASUREMENT_SIZE), "sqrt measurement noise")

    forward = linsolve(sy, pxy.T, lower=True)
    gain = linsolve(sy.T, forward, lower=False).T
    x_next = x + gain @ residue
    a = np.eye(STATE_SIZE) - gain @ h
    r = qr_r(np.vstack([(a @ s).T, (gain @ r_sqrt).T]))
    return FilterStep(x_next, r.T.copy())


def correct_sqrt(z, sqrt_measurement_noise, x, s) -> FilterStep:
    """Correct the state with the measurement ``z = (yaw_rate, vx)``."""
    z = _vector(z, MEASUREMENT_SIZE, "z")
    rs = _matrix(sqrt_measurement_noise, (MEASUREMENT_SIZE, MEASUREMENT_SIZE), "sqrt measurement noise")
    x = _vector(x, STATE_SIZE, "x")
    s = _matrix(s, (STATE_SIZE, STATE_SIZE), "sqrt covariance")
    h = MEASUREMENT_JACOBIAN

    sy = qr_r(np.vstack([s.T @ h.T, rs.T])).T
    residue = z - h @ x
    pxy = (s @ s.T) @ h.T
    return correct_state_and_sqrt_covariance(x, s, residue, pxy, sy, h, rs)


class ExtendedKalmanFilter:
    """Square-root EKF holding its state and noise factors.

    Starts from a zero state with identity state covariance, process noise and
    measurement noise.
    """

    def __init__(self):
        self.state = np.zeros(STATE_SIZE)
        self.sqrt_state_covariance = np.eye(STATE_SIZE)
        self.sqrt_process_noise = np.eye(STATE_SIZE)
        self.sqrt_measurement_noise = np.eye(MEASUREMENT_SIZE)

    @property
    def state_covariance(self) -> np.ndarray:
        return self.sqrt_state_covariance @ self.sqrt_state_covariance.T

    @property
    def process_noise(self) -> np.ndarray:
        return self.sqrt_process_noise @ self.sqrt_process_noise.T

    @property
    def measurement_noise(self) -> np.ndarray:
        return self.sqrt_measurement_noise @ self.sqrt_measurement_noise.T

    def set_process_noise(self, value) -> None:
        """Set the process noise covariance (positive semi-definite, 3x3)."""
        q = _matrix(value, (STATE_SIZE, STATE_SIZE), "process noise")
        self.sqrt_process_noise = chol_psd(q)

    def set_measurement_noise(self, value) -> None:
        """Set the measurement noise covariance (positive semi-definite, 2x2)."""
        r = _matrix(value, (MEASUREMENT_SIZE, MEASUREMENT_SIZE), "measurement noise")
        self.sqrt_measurement_noise = chol_psd(r)

    def predict(self, u, parameters, dt) -> np.ndarray:
        """Run the prediction step and return the predicted state."""
        self.state, self.sqrt_state_covariance = predict_sqrt(
            self.sqrt_process_noise, self.state, self.sqrt_state_covariance, u, parameters, dt
        )
        return self.state.copy()

    def correct(self, z) -> np.ndarray:
        """Run the measurement update and return the corrected state."""
        self.state, self.sqrt_state_covariance = correct_sqrt(
            z, self.sqrt_measurement_noise, self.state, self.sqrt_state_covariance
        )
        return self.state.copy()