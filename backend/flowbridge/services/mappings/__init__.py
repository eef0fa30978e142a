"""Node mapping services exports."""
from flowbridge.services.mappings.base_mappings import BaseMappingRegistry, get_base_registry
from flowbridge.services.mappings.coverage import CoverageResult, CoverageValidator
from flowbridge.services.mappings.mapping_database import (
    MappingDatabase,
    MappingTables,
    get_mapping_database,
)
from flowbridge.services.mappings.resolver import NodeMappingResolver, check_round_trip_consistency
from flowbridge.services.mappings.transforms import apply_transform
from flowbridge.services.mappings.user_mappings import (
    UserMapping,
    UserMappingStore,
    get_user_mapping_store,
)

__all__ = [
    "BaseMappingRegistry",
    "CoverageResult",
    "CoverageValidator",
    "MappingDatabase",
    "MappingTables",
    "NodeMappingResolver",
    "UserMapping",
    "UserMappingStore",
    "apply_transform",
    "check_round_trip_consistency",
    "get_base_registry",
    "get_mapping_database",
    "get_user_mapping_store",
]
