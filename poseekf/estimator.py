"""Vehicle pose estimation from a square-root EKF on a single-track model.

The filter estimates ``(vx, vy, yaw_rate)`` in the vehicle frame. After each
measurement update the pose ``(X, Y, psi)`` in the world frame is advanced
by dead reckoning with the corrected velocities.
"""

from __future__ import annotations

import argparse
import math
import sys

import numpy as np

from poseekf.ekf import ExtendedKalmanFilter

__all__ = ["PoseEstimator", "estimate_step", "main"]


class PoseEstimator:
    """Tracks vehicle velocities with an EKF and integrates them into a pose."""

    def __init__(self, parameters, dt, process_noise, measurement_noise):
        params = np.asarray(parameters, dtype=float).ravel()
        if params.size != 6:
            raise ValueError(f"parameters must have 6 elements, got {params.size}")
        self.parameters = params.copy()
        self.dt = float(dt)
        self._pose = np.zeros(3)
        self.ekf = ExtendedKalmanFilter()
        self.ekf.set_process_noise(process_noise)
        self.ekf.set_measurement_noise(measurement_noise)

    def predict(self, u) -> np.ndarray:
        """Run the filter prediction with input ``u = (steering, acceleration)``."""
        return self.ekf.predict(u, self.parameters, self.dt)

    def correct(self, z) -> np.ndarray:
        """Correct with ``z = (yaw_rate, vx)`` and advance the pose."""
        vx, vy, yaw_rate = self.ekf.correct(z)
        x, y, psi = self._pose
        sin_psi = math.sin(psi)
        cos_psi = math.cos(psi)
        self._pose = np.array(
            [
                x + self.dt * (vx * cos_psi - vy * sin_psi),
                y + self.dt * (vx * sin_psi + vy * cos_psi),
                psi + self.dt * yaw_rate,
            ]
        )
        return self.ekf.state.copy()

    def state(self) -> np.ndarray:
        """Current state estimate ``(vx, vy, yaw_rate)``."""
        return self.ekf.state.copy()

    def pose(self) -> np.ndarray:
        """Current pose ``(X, Y, psi)``."""
        return self._pose.copy()


def estimate_step(parameters, dt, process_noise, measurement_noise, u, z):
    """Run one predict/correct cycle from a fresh estimator.

    Returns the state ``(vx, vy, yaw_rate)`` and the pose ``(X, Y, psi)``.
    """
    estimator = PoseEstimator(parameters, dt, process_noise, measurement_noise)
    estimator.predict(u)
    estimator.correct(z)
    return estimator.state(), estimator.pose()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="poseekf",
        description="Run one prediction and correction step of the pose estimator.",
    )
    parser.add_argument("--parameters", type=float, nargs=6, default=[0.0] * 6,
                        metavar="P", help="cf cr lf lr iz m")
    parser.add_argument("--dt", type=float, default=0.0, help="time step")
    parser.add_argument("--process-noise", type=float, nargs=9, default=[0.0] * 9,
                        metavar="Q", help="3x3 process noise, row by row")
    parser.add_argument("--measurement-noise", type=float, nargs=4, default=[0.0] * 4,
                        metavar="R", help="2x2 measurement noise, row by row")
    parser.add_argument("-u", "--input", type=float, nargs=2, default=[0.0, 0.0],
                        metavar="U", help="steering angle and acceleration")
    parser.add_argument("-z", "--measurement", type=float, nargs=2, default=[0.0, 0.0],
                        metavar="Z", help="measured yaw rate and vx")
    return parser


def main(argv=None) -> int:
    """Command-line entry point: print the state and pose after one step."""
    args = _build_parser().parse_args(argv)
    with np.errstate(all="ignore"):
        state, pose = estimate_step(
            args.parameters,
            args.dt,
            np.reshape(args.process_noise, (3, 3)),
            np.reshape(args.measurement_noise, (2, 2)),
            args.input,
            args.measurement,
        )
    print("state: " + " ".join(repr(float(v)) for v in state))
    print("pose: " + " ".join(repr(float(v)) for v in pose))
    return 0


if __name__ == "__main__":
    sys.exit(main())