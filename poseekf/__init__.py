"""Square-root extended Kalman filter for planar vehicle velocity and pose estimation."""

__version__ = "0.1.0"
__all__ = ["linalg", "ekf", "estimator"]