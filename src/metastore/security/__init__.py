"""Secret handling for mapped password fields."""

from metastore.security.password_encoder import (
    Base64TwoWayPasswordEncoder,
    FernetTwoWayPasswordEncoder,
    TwoWayPasswordEncoder,
    encoder_from_config,
)

__all__ = [
    "Base64TwoWayPasswordEncoder",
    "FernetTwoWayPasswordEncoder",
    "TwoWayPasswordEncoder",
    "encoder_from_config",
]
