"""
Declarative entity annotations.

Entities are ordinary Python classes (usually dataclasses) whose members carry
column metadata through :func:`column` or ``typing.Annotated[..., ColumnInfo]``.
Class-level metadata is attached with the :func:`table` and :func:`check`
decorators. :func:`describe_entity` reads all of it once into an
:class:`EntityDescription`, which is what the schema model builder consumes;
descriptions can also be written by hand.

Example::

    @table("Users", schema="auth")
    @check("[Age] >= 0")
    @dataclass
    class User:
        id: int = column(primary_key=True, incremental_key=True)
        email: str = column(max_length=200, not_null=True, unique="UQ_Users_Email")
        age: Optional[int] = column(default=None)

Author: Schema Migrations SDK
Version: 1.0.0
"""

import dataclasses
import typing
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, Union

from .types import ColumnType, ReferentialAction

COLUMN_METADATA_KEY = "schema_column"


@dataclass(frozen=True)
class PrimaryKey:
    """Primary key membership; ``order`` is the key column position."""
    order: int = 0
    name: Optional[str] = None

    def __post_init__(self):
        if self.order < 0:
            raise ValueError("Primary key order must be >= 0")


@dataclass(frozen=True)
class Unique:
    """Unique constraint membership; members sharing ``group`` form one constraint."""
    group: str
    order: int = 0
    name: Optional[str] = None

    def __post_init__(self):
        if not self.group:
            raise ValueError("Unique group name is required")
        if self.order < 0:
            raise ValueError("Unique order must be >= 0")


@dataclass(frozen=True)
class Index:
    """Index membership; members sharing ``name`` form one index."""
    name: str
    order: int = 0
    unique: bool = False

    def __post_init__(self):
        if not self.name:
            raise ValueError("Index name is required")
        if self.order < 0:
            raise ValueError("Index order must be >= 0")


@dataclass(frozen=True)
class Check:
    """Raw boolean check expression in the target dialect."""
    expression: str
    name: Optional[str] = None

    def __post_init__(self):
        if not self.expression or not self.expression.strip():
            raise ValueError("Check expression is required")


@dataclass(frozen=True)
class ForeignKey:
    """
    Reference to a member of another entity.

    ``ref_entity`` is either the entity class or its class name; a name is
    resolved against the entities passed to the same build call.
    """
    ref_entity: Union[type, str]
    ref_member: str
    name: Optional[str] = None
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    on_update: ReferentialAction = ReferentialAction.NO_ACTION

    @property
    def ref_entity_name(self) -> str:
        if isinstance(self.ref_entity, str):
            return self.ref_entity
        return self.ref_entity.__name__


@dataclass(frozen=True)
class IncrementalKey:
    """Database-generated sequential value (identity or sequence)."""
    sequence_name: Optional[str] = None
    start_with: Optional[int] = None
    increment_by: Optional[int] = None

    def __post_init__(self):
        if self.increment_by == 0:
            raise ValueError("Incremental key increment must not be 0")


@dataclass(frozen=True)
class Precision:
    """Decimal precision and scale."""
    precision: int
    scale: int = 0

    def __post_init__(self):
        if self.precision <= 0 or self.precision > 38:
            raise ValueError("Precision must be between 1 and 38")
        if self.scale < 0:
            raise ValueError("Scale must be >= 0")
        if self.scale > self.precision:
            raise ValueError("Scale cannot be greater than precision")


@dataclass(frozen=True)
class TableInfo:
    name: Optional[str] = None
    schema: Optional[str] = None


@dataclass(frozen=True)
class ColumnInfo:
    """Column metadata for one entity member."""
    name: Optional[str] = None
    not_null: bool = False
    max_length: Optional[int] = None
    fixed_length: Optional[int] = None
    precision: Optional[Precision] = None
    unicode: bool = True
    primary_key: Optional[PrimaryKey] = None
    uniques: Tuple[Unique, ...] = ()
    indexes: Tuple[Index, ...] = ()
    checks: Tuple[Check, ...] = ()
    foreign_key: Optional[ForeignKey] = None
    incremental_key: Optional[IncrementalKey] = None
    json: bool = False
    db_default: Any = None
    column_type: Optional[ColumnType] = None
    ignore: bool = False

    def __post_init__(self):
        if self.max_length is not None and self.max_length <= 0:
            raise ValueError("max_length must be > 0")
        if self.fixed_length is not None and self.fixed_length <= 0:
            raise ValueError("fixed_length must be > 0")


def _as_tuple(value, kind, factory) -> tuple:
    if value is None or value is False:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(_as_tuple(v, kind, factory)[0] for v in value)
    if isinstance(value, kind):
        return (value,)
    return (factory(value),)


def column_info(
    name: Optional[str] = None,
    *,
    not_null: bool = False,
    max_length: Optional[int] = None,
    fixed_length: Optional[int] = None,
    precision: Union[Precision, Tuple[int, int], None] = None,
    unicode: bool = True,
    primary_key: Union[PrimaryKey, bool, int, None] = None,
    unique: Union[Unique, str, Sequence[Union[Unique, str]], None] = None,
    index: Union[Index, str, Sequence[Union[Index, str]], None] = None,
    check: Union[Check, str, Sequence[Union[Check, str]], None] = None,
    foreign_key: Optional[ForeignKey] = None,
    incremental_key: Union[IncrementalKey, bool, None] = None,
    json: bool = False,
    db_default: Any = None,
    column_type: Optional[ColumnType] = None,
    ignore: bool = False,
) -> ColumnInfo:
    """Build a :class:`ColumnInfo` from shorthand arguments."""
    if primary_key is True:
        pk = PrimaryKey()
    elif primary_key is None or primary_key is False:
        pk = None
    elif isinstance(primary_key, PrimaryKey):
        pk = primary_key
    else:
        pk = PrimaryKey(order=int(primary_key))

    if incremental_key is True:
        inc = IncrementalKey()
    elif isinstance(incremental_key, IncrementalKey):
        inc = incremental_key
    else:
        inc = None

    if isinstance(precision, tuple):
        precision = Precision(*precision)

    return ColumnInfo(
        name=name,
        not_null=not_null,
        max_length=max_length,
        fixed_length=fixed_length,
        precision=precision,
        unicode=unicode,
        primary_key=pk,
        uniques=_as_tuple(unique, Unique, Unique),
        indexes=_as_tuple(index, Index, Index),
        checks=_as_tuple(check, Check, Check),
        foreign_key=foreign_key,
        incremental_key=inc,
        json=json,
        db_default=db_default,
        column_type=column_type,
        ignore=ignore,
    )


def column(name: Optional[str] = None, *, default: Any = dataclasses.MISSING,
           default_factory: Any = dataclasses.MISSING, **kwargs) -> Any:
    """
    Declare column metadata on an entity member.

    Returns a ``dataclasses.field`` carrying the metadata, so it works as a
    dataclass field and as a plain class attribute. ``default`` and
    ``default_factory`` are the Python-side defaults; use ``db_default`` for
    the database DEFAULT.
    """
    info = column_info(name, **kwargs)
    return field(default=default, default_factory=default_factory,
                 metadata={COLUMN_METADATA_KEY: info})


def table(name: Optional[str] = None, schema: Optional[str] = None):
    """Class decorator setting the table (and optionally schema) name."""
    def decorator(cls):
        cls.__schema_table__ = TableInfo(name=name, schema=schema)
        return cls
    return decorator


def check(expression: str, name: Optional[str] = None):
    """Class decorator adding an entity-level check constraint."""
    def decorator(cls):
        existing = cls.__dict__.get("__schema_checks__", ())
        # Decorators apply bottom-up; prepend to keep source order
        cls.__schema_checks__ = (Check(expression, name),) + tuple(existing)
        return cls
    return decorator


@dataclass
class MemberDescription:
    name: str
    python_type: Any
    column: ColumnInfo = field(default_factory=ColumnInfo)


@dataclass
class EntityDescription:
    """Everything the schema model builder needs to know about one entity."""
    name: str
    members: List[MemberDescription] = field(default_factory=list)
    table: Optional[TableInfo] = None
    checks: List[Check] = field(default_factory=list)
    source: Any = None

    def find_member(self, name: str) -> Optional[MemberDescription]:
        for member in self.members:
            if member.name == name:
                return member
        return None


def _split_annotated(hint: Any) -> Tuple[Any, Optional[ColumnInfo]]:
    if typing.get_origin(hint) is typing.Annotated:
        base, *extras = typing.get_args(hint)
        for extra in extras:
            if isinstance(extra, ColumnInfo):
                return base, extra
        return base, None
    return hint, None


def describe_entity(cls: Type) -> EntityDescription:
    """Read the annotations of ``cls`` into an :class:`EntityDescription`."""
    if isinstance(cls, EntityDescription):
        return cls

    hints = typing.get_type_hints(cls, include_extras=True)
    dataclass_fields: Dict[str, dataclasses.Field] = {}
    if dataclasses.is_dataclass(cls):
        dataclass_fields = {f.name: f for f in dataclasses.fields(cls)}

    members = []
    for member_name, hint in hints.items():
        if member_name.startswith("_"):
            continue
        if typing.get_origin(hint) is typing.ClassVar or hint is typing.ClassVar:
            continue

        python_type, info = _split_annotated(hint)

        declared = dataclass_fields.get(member_name)
        if declared is None:
            attr = getattr(cls, member_name, None)
            if isinstance(attr, dataclasses.Field):
                declared = attr
        if declared is not None and COLUMN_METADATA_KEY in declared.metadata:
            info = declared.metadata[COLUMN_METADATA_KEY]

        info = info or ColumnInfo()
        if info.ignore:
            continue
        members.append(MemberDescription(member_name, python_type, info))

    return EntityDescription(
        name=cls.__name__,
        members=members,
        table=getattr(cls, "__schema_table__", None),
        checks=list(cls.__dict__.get("__schema_checks__", ())),
        source=cls,
    )


def find_entities(module: Any) -> List[type]:
    """Classes defined in ``module`` that carry a ``@table`` annotation, in definition order."""
    found = []
    for value in vars(module).values():
        if (isinstance(value, type) and value.__module__ == module.__name__
                and "__schema_table__" in value.__dict__):
            found.append(value)
    return found
