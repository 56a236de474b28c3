"""
Configuration module for sensor models.

Handles loading and saving camera calibrations and RPC parameter blocks
from YAML files.
"""

import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Dict, Any
import logging

from .camera import CameraModel, PinholeCamera, FisheyeCamera
from .rpc import RpcCoefficients, RpcModel

logger = logging.getLogger(__name__)

CAMERA_MODELS = ('pinhole', 'fisheye')


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return an optional mapping section; absent or empty gives {}."""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


@dataclass
class CameraIntrinsics:
    """Camera intrinsic parameters."""
    width: int  # Image width in pixels
    height: int  # Image height in pixels
    fx: float  # Focal length in x (pixels)
    fy: float  # Focal length in y (pixels)
    cx: float  # Principal point x (pixels)
    cy: float  # Principal point y (pixels)
    model: str = 'pinhole'  # 'pinhole' or 'fisheye'
    k1: float = 0.0  # Radial (pinhole) or angular (fisheye) coefficient
    k2: float = 0.0
    k3: float = 0.0
    k4: float = 0.0  # Fisheye only
    p1: float = 0.0  # Tangential, pinhole only
    p2: float = 0.0  # Tangential, pinhole only

    def build(self) -> CameraModel:
        """
        Create the camera model described by these intrinsics.

        A pinhole camera with all coefficients zero is built without
        distortion.

        Raises:
            ValueError: unknown model, or coefficients the model does not have
        """
        if self.model == 'pinhole':
            if self.k4 != 0:
                raise ValueError("Pinhole camera does not use k4")
            coeffs = [self.k1, self.k2, self.k3, self.p1, self.p2]
            if all(c == 0 for c in coeffs):
                return PinholeCamera.ideal(
                    self.width, self.height, self.fx, self.fy, self.cx, self.cy,
                )
            return PinholeCamera.brown_conrady(
                self.width, self.height, self.fx, self.fy, self.cx, self.cy, *coeffs,
            )

        if self.model == 'fisheye':
            if self.p1 != 0 or self.p2 != 0:
                raise ValueError("Fisheye camera does not use p1/p2")
            return FisheyeCamera.equidistant(
                self.width, self.height, self.fx, self.fy, self.cx, self.cy,
                self.k1, self.k2, self.k3, self.k4,
            )

        raise ValueError(
            f"Unknown camera model '{self.model}' (expected one of {CAMERA_MODELS})"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CameraIntrinsics":
        """Parse the `camera` section of a configuration file."""
        dist = _section(data, 'distortion')
        return cls(
            width=int(data['width']),
            height=int(data['height']),
            fx=float(data['fx']),
            fy=float(data['fy']),
            cx=float(data['cx']),
            cy=float(data['cy']),
            model=data.get('model', 'pinhole'),
            k1=float(dist.get('k1', 0.0)),
            k2=float(dist.get('k2', 0.0)),
            k3=float(dist.get('k3', 0.0)),
            k4=float(dist.get('k4', 0.0)),
            p1=float(dist.get('p1', 0.0)),
            p2=float(dist.get('p2', 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.model == 'fisheye':
            dist = {'k1': self.k1, 'k2': self.k2, 'k3': self.k3, 'k4': self.k4}
        else:
            dist = {'k1': self.k1, 'k2': self.k2, 'k3': self.k3, 'p1': self.p1, 'p2': self.p2}
        return {
            'model': self.model,
            'width': self.width,
            'height': self.height,
            'fx': self.fx,
            'fy': self.fy,
            'cx': self.cx,
            'cy': self.cy,
            'distortion': dist,
        }


@dataclass
class Config:
    """
    Main configuration class for sensor models.

    Either section may be absent; a file can describe a frame camera,
    an RPC sensor, or both.

    Attributes:
        camera: Camera intrinsic parameters
        rpc: RPC parameter block
    """
    camera: Optional[CameraIntrinsics] = None
    rpc: Optional[RpcCoefficients] = None

    @classmethod
    def from_yaml(cls, config_path: str) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Config object with loaded parameters

        Example YAML structure:
            camera:
              model: pinhole
              width: 4000
              height: 3000
              fx: 5000.0
              fy: 5000.0
              cx: 2000.0
              cy: 1500.0
              distortion:
                k1: -0.1
                k2: 0.01
            rpc:
              LINE_OFF: 5000.0
              LINE_SCALE: 5000.0
              ...
              LINE_NUM_COEFF: [0.0, 1.0, 0.0, ...]  # 20 values
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")

        logger.info(f"Loading configuration from {config_path}")

        camera = None
        cam_data = _section(data, 'camera')
        if cam_data:
            try:
                camera = CameraIntrinsics.from_dict(cam_data)
            except KeyError as e:
                raise ValueError(f"Missing camera parameter: {e.args[0]}") from None

        rpc = None
        rpc_data = _section(data, 'rpc')
        if rpc_data:
            rpc = RpcCoefficients.from_gdal_metadata(rpc_data)

        return cls(camera=camera, rpc=rpc)

    def to_yaml(self, config_path: str) -> None:
        """Save configuration to a YAML file."""
        data: Dict[str, Any] = {}
        if self.camera is not None:
            data['camera'] = self.camera.to_dict()
        if self.rpc is not None:
            data['rpc'] = self.rpc.to_gdal_metadata()

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")

    def build_camera(self) -> CameraModel:
        if self.camera is None:
            raise ValueError("Configuration has no camera section")
        return self.camera.build()

    def build_rpc_model(self) -> RpcModel:
        if self.rpc is None:
            raise ValueError("Configuration has no rpc section")
        return RpcModel(self.rpc)
