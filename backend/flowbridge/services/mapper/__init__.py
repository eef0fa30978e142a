"""Node mapper exports."""
from flowbridge.services.mapper.node_mapper import NodeConversion, NodeMapper, is_router_type
from flowbridge.services.mapper.stub_factory import StubFactory, get_stub_info, is_stub

__all__ = [
    "NodeConversion",
    "NodeMapper",
    "StubFactory",
    "get_stub_info",
    "is_router_type",
    "is_stub",
]
