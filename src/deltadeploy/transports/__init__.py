"""Transports module - Remote deployment targets."""

from deltadeploy.transports.base import Transport
from deltadeploy.transports.factory import (
    check_connection,
    create_transport,
    register_transport,
)
from deltadeploy.transports.local import LocalTransport
from deltadeploy.transports.s3 import S3Transport

__all__ = [
    # Interface
    "Transport",
    # Factory
    "check_connection",
    "create_transport",
    "register_transport",
    # Backends
    "LocalTransport",
    "S3Transport",
]
