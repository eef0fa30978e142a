"""Parameter processing exports."""
from flowbridge.services.parameters.parameter_processor import (
    ParameterProcessor,
    convert_parameters_across_platforms,
    evaluate_expressions,
    evaluate_parameters,
    find_ambiguous_expressions,
    identify_expressions_for_review,
    iter_leaves,
)

__all__ = [
    "ParameterProcessor",
    "convert_parameters_across_platforms",
    "evaluate_expressions",
    "evaluate_parameters",
    "find_ambiguous_expressions",
    "identify_expressions_for_review",
    "iter_leaves",
]
