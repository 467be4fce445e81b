# cartconv cartridge hardware table
"""
Cartridge hardware descriptors.

Use :func:`get_descriptor(cart_id) <table.get_descriptor>` for a hardware id
read from a .crt header, or :func:`resolve_target(token) <table.resolve_target>`
for a ``-t`` command-line token.
"""

from cartconv.core.carts.descriptor import (
    CartDescriptor,
    ChipSpec,
    EncodingStrategy,
    FixedLayout,
    Generic,
    Interleaved,
    Multiplexing,
    MultiplexKind,
    RegularBanked,
    ShiftedBanked,
    SizeConditional,
    SplitBlock,
)

from cartconv.core.carts.table import (
    CART_INFO,
    SupportedType,
    TargetSelection,
    find_by_option,
    get_descriptor,
    resolve_target,
    supported_types,
)

__all__ = [
    "CartDescriptor",
    "ChipSpec",
    "EncodingStrategy",
    # strategies
    "FixedLayout",
    "Generic",
    "Interleaved",
    "Multiplexing",
    "MultiplexKind",
    "RegularBanked",
    "ShiftedBanked",
    "SizeConditional",
    "SplitBlock",
    # table
    "CART_INFO",
    "SupportedType",
    "TargetSelection",
    "find_by_option",
    "get_descriptor",
    "resolve_target",
    "supported_types",
]
