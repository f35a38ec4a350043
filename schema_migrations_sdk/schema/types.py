"""
Logical column types and Python type mapping.

Column types are dialect-neutral: a dialect turns them into concrete SQL type
names. The type mapper decides which logical type a Python annotation maps to.

Author: Schema Migrations SDK
Version: 1.0.0
"""

import types
import typing
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, NewType


# Marker types for annotations that have no distinct Python runtime type
Int64 = NewType("Int64", int)
DateTimeOffset = NewType("DateTimeOffset", datetime)


class ReferentialAction(Enum):
    """Foreign key ON DELETE / ON UPDATE behaviour."""
    NO_ACTION = "no_action"
    RESTRICT = "restrict"
    CASCADE = "cascade"
    SET_NULL = "set_null"
    SET_DEFAULT = "set_default"


@dataclass(frozen=True)
class ColumnType:
    """Base class for logical column types."""

    @property
    def kind(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True)
class Int32Type(ColumnType):
    pass


@dataclass(frozen=True)
class Int64Type(ColumnType):
    pass


@dataclass(frozen=True)
class BoolType(ColumnType):
    pass


@dataclass(frozen=True)
class DateTimeType(ColumnType):
    pass


@dataclass(frozen=True)
class DateTimeOffsetType(ColumnType):
    pass


@dataclass(frozen=True)
class GuidType(ColumnType):
    pass


@dataclass(frozen=True)
class DecimalType(ColumnType):
    precision: int = 18
    scale: int = 2


@dataclass(frozen=True)
class DoubleType(ColumnType):
    pass


@dataclass(frozen=True)
class StringType(ColumnType):
    max_length: Optional[int] = None
    unicode: bool = True
    fixed: bool = False


@dataclass(frozen=True)
class BytesType(ColumnType):
    max_length: Optional[int] = None


@dataclass(frozen=True)
class JsonType(ColumnType):
    pass


def unwrap_optional(python_type: Any) -> Any:
    """Return ``X`` for ``Optional[X]`` / ``X | None``, otherwise the type unchanged."""
    origin = typing.get_origin(python_type)
    union_types = (typing.Union, getattr(types, "UnionType", typing.Union))
    if origin in union_types:
        args = [arg for arg in typing.get_args(python_type) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return python_type


class TypeMapper(ABC):
    """Strategy that maps a Python member type to a logical column type."""

    @abstractmethod
    def map(self, python_type: Any) -> ColumnType:
        """Map ``python_type`` to a :class:`ColumnType`."""


class DefaultTypeMapper(TypeMapper):
    """
    Conservative default mapping.

    ``int`` maps to Int32 and ``Decimal`` to Decimal(18,2); use the
    :data:`Int64` / :data:`DateTimeOffset` markers for the wider types.
    Unknown types fall back to an unbounded string.
    """

    def map(self, python_type: Any) -> ColumnType:
        tp = unwrap_optional(python_type)

        if tp is Int64:
            return Int64Type()
        if tp is DateTimeOffset:
            return DateTimeOffsetType()

        # Other NewTypes map like their supertype
        while hasattr(tp, "__supertype__"):
            tp = tp.__supertype__

        # bool is a subclass of int, check it first
        if tp is bool:
            return BoolType()
        if tp is int:
            return Int32Type()
        if tp is datetime:
            return DateTimeType()
        if tp is uuid.UUID:
            return GuidType()
        if tp is Decimal:
            return DecimalType(18, 2)
        if tp is float:
            return DoubleType()
        if tp in (bytes, bytearray):
            return BytesType()
        if tp is str:
            return StringType()

        return StringType()
