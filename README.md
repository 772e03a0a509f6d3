# poseekf

A square-root extended Kalman filter for a planar single-track vehicle
model. It estimates the velocity state `(vx, vy, yaw_rate)` in the vehicle
frame and, after each measurement update, integrates the pose `(X, Y, psi)`
in the world frame by dead reckoning with the corrected velocities.

## Model

- State: `(vx, vy, yaw_rate)`
- Input `u`: `(steering_angle, longitudinal_acceleration)`
- Measurement `z`: `(yaw_rate, vx)`
- Parameters: `(cf, cr, lf, lr, iz, m)`: front and rear cornering
  stiffness, distances of the front and rear axle from the centre of
  gravity, yaw inertia and mass.

Covariances are carried as lower square-root factors `S` with
`P == S @ S.T`. The filter starts from a zero state with identity state
covariance.

## Installation

```
pip install .
```

Tests need the `test` extra: `pip install .[test]`, then `pytest`.

## Usage

```python
import numpy as np
from poseekf.estimator import PoseEstimator, estimate_step

parameters = [80000.0, 80000.0, 1.2, 1.4, 2500.0, 1500.0]  # cf cr lf lr iz m
dt = 0.01
process_noise = np.eye(3) * 1e-3
measurement_noise = np.eye(2) * 1e-2

est = PoseEstimator(parameters, dt, process_noise, measurement_noise)
est.predict([0.05, 1.0])      # steering angle, acceleration; returns the predicted state
est.correct([0.02, 10.0])     # measured yaw rate, vx; returns the corrected state
print(est.state())            # vx, vy, yaw_rate
print(est.pose())             # X, Y, psi

# A fresh estimator, one predict and one correct, returning (state, pose):
state, pose = estimate_step(parameters, dt, process_noise, measurement_noise,
                            [0.05, 1.0], [0.02, 10.0])
```

Process and measurement noise are given as covariance matrices (3x3 and
2x2). The filter stores their square-root factors, taken from the Cholesky
factorisation when the matrix is positive definite and from the singular
value decomposition otherwise.

### Lower-level pieces

`poseekf.ekf` holds the filter itself:

- `ExtendedKalmanFilter` with `set_process_noise`, `set_measurement_noise`,
  `predict(u, parameters, dt)` and `correct(z)`, plus the attributes
  `state`, `sqrt_state_covariance`, `sqrt_process_noise`,
  `sqrt_measurement_noise` and the properties `state_covariance`,
  `process_noise` and `measurement_noise`.
- `state_transition` and `state_jacobian` for the vehicle model.
- `predict_sqrt`, `correct_sqrt` and `correct_state_and_sqrt_covariance`,
  which return a `FilterStep(state, sqrt_covariance)`.
- `MEASUREMENT_JACOBIAN`, the fixed map from state to measurement.

`poseekf.linalg` holds the small dense helpers they use: `any_non_finite`,
`chol` (upper Cholesky factor with failure index), `chol_psd`, `linsolve`
(triangular solve), `mtimes` (`a.T @ b.T`), `qr_r` and `svd`.

## Command line

```
poseekf --parameters 80000 80000 1.2 1.4 2500 1500 --dt 0.01 \
        --process-noise 0.001 0 0 0 0.001 0 0 0 0.001 \
        --measurement-noise 0.01 0 0 0.01 \
        -u 0.05 1.0 -z 0.02 10.0
```

This runs one prediction and one correction from a fresh estimator and
prints two lines, `state:` followed by `vx vy yaw_rate` and `pose:`
followed by `X Y psi`. Matrices are given row by row. Every option
defaults to zeros, so `poseekf` with no options runs on all-zero inputs,
which gives non-finite results.

## What it does not do

The package is a library and a one-step command. It does not read sensor
streams, publish estimates to other processes, or keep an estimator running
between invocations of the command; a caller that wants continuous
estimation keeps a `PoseEstimator` and calls `predict` and `correct` for
each time step.