"""
Command-line interface for sensor model projections.

Usage:
    sensor-models project config.yaml X Y Z
    sensor-models unproject config.yaml U V
    sensor-models ground-to-image config.yaml LAT LON ALT [--ecef]
    sensor-models image-to-ground config.yaml LINE SAMPLE HEIGHT
    sensor-models lla-to-ecef LAT LON ALT
    sensor-models ecef-to-lla X Y Z
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import Config
from .errors import SensorModelError
from .transforms import LlaCoord, ecef_to_lla, lla_to_ecef

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def _cmd_project(args: argparse.Namespace) -> int:
    camera = Config.from_yaml(args.config).build_camera()
    pixel = camera.project((args.x, args.y, args.z))
    if pixel is None:
        logger.error(f"Point ({args.x}, {args.y}, {args.z}) is behind the camera")
        return 1

    u, v = pixel
    print(f"{u:.6f} {v:.6f}")
    if not camera.contains(u, v):
        logger.warning(f"Pixel ({u:.3f}, {v:.3f}) is outside the {camera.width}x{camera.height} image")
    return 0


def _cmd_unproject(args: argparse.Namespace) -> int:
    camera = Config.from_yaml(args.config).build_camera()
    ray = camera.unproject((args.u, args.v))
    print(f"{ray[0]:.9f} {ray[1]:.9f} {ray[2]:.9f}")
    return 0


def _cmd_ground_to_image(args: argparse.Namespace) -> int:
    rpc = Config.from_yaml(args.config).build_rpc_model()
    if args.ecef:
        line, sample = rpc.ground_to_image((args.a, args.b, args.c))
    else:
        line, sample = rpc.lla_to_image(LlaCoord(args.a, args.b, args.c))
    print(f"{line:.6f} {sample:.6f}")
    return 0


def _cmd_image_to_ground(args: argparse.Namespace) -> int:
    rpc = Config.from_yaml(args.config).build_rpc_model()
    lla = rpc.image_to_lla(args.line, args.sample, args.height)
    ecef = lla_to_ecef(lla)
    print(f"{lla.lat:.9f} {lla.lon:.9f} {lla.alt:.3f}")
    print(f"{ecef[0]:.3f} {ecef[1]:.3f} {ecef[2]:.3f}")
    return 0


def _cmd_lla_to_ecef(args: argparse.Namespace) -> int:
    ecef = lla_to_ecef(LlaCoord(args.lat, args.lon, args.alt))
    print(f"{ecef[0]:.3f} {ecef[1]:.3f} {ecef[2]:.3f}")
    return 0


def _cmd_ecef_to_lla(args: argparse.Namespace) -> int:
    lla = ecef_to_lla((args.x, args.y, args.z))
    print(f"{lla.lat:.9f} {lla.lon:.9f} {lla.alt:.3f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sensor-models',
        description='Project points through camera and RPC sensor models',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
    # Project a camera-frame point to pixels
    sensor-models project camera.yaml 0.5 0.3 1.0

    # Locate an RPC image point on the ground at 100 m
    sensor-models image-to-ground rpc.yaml 5500 4500 100

    # Verbose output
    sensor-models -v ecef-to-lla 6378137 0 0
'''
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('project', help='Camera-frame point to pixel')
    p.add_argument('config', type=str, help='Path to YAML configuration file')
    for name in ('x', 'y', 'z'):
        p.add_argument(name, type=float)
    p.set_defaults(func=_cmd_project)

    p = sub.add_parser('unproject', help='Pixel to unit ray in camera frame')
    p.add_argument('config', type=str, help='Path to YAML configuration file')
    p.add_argument('u', type=float)
    p.add_argument('v', type=float)
    p.set_defaults(func=_cmd_unproject)

    p = sub.add_parser('ground-to-image', help='Ground point to RPC line/sample')
    p.add_argument('config', type=str, help='Path to YAML configuration file')
    p.add_argument('a', type=float, metavar='LAT|X')
    p.add_argument('b', type=float, metavar='LON|Y')
    p.add_argument('c', type=float, metavar='ALT|Z')
    p.add_argument(
        '--ecef',
        action='store_true',
        help='Interpret the point as ECEF X Y Z in meters'
    )
    p.set_defaults(func=_cmd_ground_to_image)

    p = sub.add_parser('image-to-ground', help='RPC line/sample to ground at a height')
    p.add_argument('config', type=str, help='Path to YAML configuration file')
    p.add_argument('line', type=float)
    p.add_argument('sample', type=float)
    p.add_argument('height', type=float)
    p.set_defaults(func=_cmd_image_to_ground)

    p = sub.add_parser('lla-to-ecef', help='Geodetic WGS84 to ECEF')
    p.add_argument('lat', type=float)
    p.add_argument('lon', type=float)
    p.add_argument('alt', type=float)
    p.set_defaults(func=_cmd_lla_to_ecef)

    p = sub.add_parser('ecef-to-lla', help='ECEF to geodetic WGS84')
    p.add_argument('x', type=float)
    p.add_argument('y', type=float)
    p.add_argument('z', type=float)
    p.set_defaults(func=_cmd_ecef_to_lla)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        return args.func(args)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except SensorModelError as e:
        logger.error(f"Projection failed: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
