"""Catalog dataclasses for stored procedures and output tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from procexport.export.common.constants import ParameterKind
from procexport.export.common.exceptions import ConfigurationError

_DECIMAL_MARKERS = ("decimal", "numeric", "money", "float", "real")
_DATE_MARKERS = ("date", "time")


def parameter_kind_for(sql_type: str) -> ParameterKind:
    """Map a declared SQL type string to its binding kind."""
    lowered = (sql_type or "").lower()
    if "int" in lowered:
        return ParameterKind.INT
    if any(marker in lowered for marker in _DECIMAL_MARKERS):
        return ParameterKind.DECIMAL
    if any(marker in lowered for marker in _DATE_MARKERS):
        return ParameterKind.DATE
    return ParameterKind.TEXT


@dataclass(frozen=True)
class TableSpec:
    """A queryable output table."""

    name: str
    display_name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TableSpec:
        name = data.get("name")
        if not name:
            raise ConfigurationError(f"Table entry is missing 'name': {data}")
        return cls(
            name=name,
            display_name=data.get("display_name") or name,
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class ParameterSpec:
    """A declared stored procedure parameter."""

    name: str
    type: str = "varchar"
    required: bool = True
    kind: ParameterKind = ParameterKind.TEXT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ParameterSpec:
        name = data.get("name")
        if not name:
            raise ConfigurationError(f"Parameter entry is missing 'name': {data}")
        sql_type = data.get("type", "varchar")
        return cls(
            name=name,
            type=sql_type,
            required=bool(data.get("required", True)),
            kind=parameter_kind_for(sql_type),
        )


@dataclass(frozen=True)
class ProcedureSpec:
    """A parameterized stored procedure and the tables it populates."""

    name: str
    display_name: str = ""
    description: str = ""
    parameters: List[ParameterSpec] = field(default_factory=list)
    output_tables: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ProcedureSpec:
        name = data.get("name")
        if not name:
            raise ConfigurationError(f"Procedure entry is missing 'name': {data}")
        return cls(
            name=name,
            display_name=data.get("display_name") or name,
            description=data.get("description", ""),
            parameters=[ParameterSpec.from_dict(p) for p in data.get("parameters", []) or []],
            output_tables=list(data.get("output_tables", []) or []),
        )


@dataclass
class Catalog:
    """Procedures and tables available for one operation mode."""

    procedures: List[ProcedureSpec] = field(default_factory=list)
    tables: List[TableSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Catalog:
        data = data or {}
        return cls(
            procedures=[ProcedureSpec.from_dict(p) for p in data.get("procedures", []) or []],
            tables=[TableSpec.from_dict(t) for t in data.get("tables", []) or []],
        )

    def get_procedure(self, name: str) -> ProcedureSpec:
        for procedure in self.procedures:
            if procedure.name == name:
                return procedure
        raise ConfigurationError(
            f"Unknown procedure: '{name}'. "
            f"Valid options: {', '.join(sorted(p.name for p in self.procedures)) or 'none'}"
        )

    def get_table(self, name: str) -> TableSpec:
        for table in self.tables:
            if table.name == name:
                return table
        raise ConfigurationError(
            f"Unknown table: '{name}'. "
            f"Valid options: {', '.join(sorted(t.name for t in self.tables)) or 'none'}"
        )
