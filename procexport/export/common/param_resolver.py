"""Positional binding of period tokens to stored procedure parameters."""

from __future__ import annotations

from typing import Any, Dict, Optional

from procexport.export.common.catalog import ProcedureSpec
from procexport.export.common.constants import ParameterKind
from procexport.export.common.exceptions import ErrorContext, ParameterBindingError


def normalize_parameter_name(name: str) -> str:
    """Ensure a parameter name carries the ``@`` prefix SQL Server expects."""
    return name if name.startswith("@") else f"@{name}"


def bind_parameters(
    procedure: ProcedureSpec,
    period_start: Optional[str],
    period_end: Optional[str],
) -> Dict[str, Any]:
    """Bind the start/end period tokens to the first two declared parameters.

    Parameters declared with an integer type are parsed with ``int()``; all
    other kinds are passed through as strings. Procedures with fewer than two
    parameters only bind what they declare.

    Args:
        procedure: Procedure whose declared parameters drive the binding
        period_start: Start token (typically YYYYMMDD)
        period_end: End token (typically YYYYMMDD)

    Returns:
        Ordered mapping of ``@name`` to bound value

    Raises:
        ParameterBindingError: If a token cannot be parsed for an integer parameter
    """
    bound: Dict[str, Any] = {}
    tokens = (period_start, period_end)

    for param, token in zip(procedure.parameters[:2], tokens):
        name = normalize_parameter_name(param.name)
        if param.kind == ParameterKind.INT:
            try:
                bound[name] = int(token)
            except (TypeError, ValueError):
                raise ParameterBindingError(
                    f"Parameter {name} expects an integer but got '{token}'",
                    context=ErrorContext(procedure_name=procedure.name, operation="bind_parameters"),
                ) from None
        else:
            bound[name] = token

    return bound
