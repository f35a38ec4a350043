"""
Schema model builder.

Turns entity descriptions into a :class:`SchemaModel`. Misused annotations
are caller errors and fail the build immediately with a
:class:`ModelBuildError` naming the offending entity and member.

Author: Schema Migrations SDK
Version: 1.0.0
"""

import logging
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ModelBuildError
from .config import SchemaBuilderConfig
from .entities import EntityDescription, MemberDescription, describe_entity
from .model import (
    DbCheck, DbColumn, DbForeignKey, DbIndex, DbPrimaryKey, DbTable, DbUnique,
    SchemaModel
)
from .types import (
    ColumnType, DecimalType, GuidType, Int32Type, Int64Type, JsonType, StringType
)


class SchemaModelBuilder:
    """Builds a :class:`SchemaModel` from annotated entities."""

    def __init__(self, config: Optional[SchemaBuilderConfig] = None):
        self.config = config or SchemaBuilderConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._known: Dict[str, EntityDescription] = {}

    def build(self, *entities: Any) -> SchemaModel:
        """
        Build a schema model.

        Args:
            *entities: Entity classes or :class:`EntityDescription` objects

        Returns:
            The populated schema model

        Raises:
            ModelBuildError: On invalid or inconsistent annotations
        """
        descriptions = [describe_entity(entity) for entity in entities]
        self._known = {d.name: d for d in descriptions}

        model = SchemaModel()
        mapped: List[Tuple[EntityDescription, DbTable]] = []

        for description in descriptions:
            if self.config.require_table_annotation and description.table is None:
                self.logger.debug(f"Skipping {description.name}: no @table annotation")
                continue

            schema_name, table_name = self._resolve_table(description)
            table = model.get_or_add_schema(schema_name).get_or_add_table(
                table_name, description.source or description
            )
            self._build_columns(table, description)
            mapped.append((description, table))

        # Constraints after all columns so foreign keys can see every entity
        for description, table in mapped:
            self._build_constraints(table, description)

        self.logger.debug(f"Built schema model with {len(model)} tables")
        return model

    def _resolve_table(self, description: EntityDescription) -> Tuple[str, str]:
        info = description.table
        schema_name = (info.schema if info and info.schema else None) or self.config.default_schema
        table_name = (info.name if info and info.name else None) or description.name
        return schema_name, table_name

    @staticmethod
    def _column_name(member: MemberDescription) -> str:
        return member.column.name or member.name

    def _resolve_type(self, description: EntityDescription, member: MemberDescription) -> ColumnType:
        info = member.column
        where = f"{description.name}.{member.name}"

        if info.column_type is not None:
            column_type = info.column_type
        elif info.json:
            column_type = JsonType()
        else:
            column_type = self.config.type_mapper.map(member.python_type)

        if info.max_length is not None or info.fixed_length is not None:
            if not isinstance(column_type, StringType):
                raise ModelBuildError(
                    f"Length annotations only apply to string members; {where} is {column_type.kind}",
                    entity=description.name, member=member.name
                )
            if info.max_length is not None and info.fixed_length is not None:
                raise ModelBuildError(
                    f"Use either max_length or fixed_length, not both: {where}",
                    entity=description.name, member=member.name
                )
            column_type = replace(
                column_type,
                max_length=info.max_length or info.fixed_length,
                fixed=info.fixed_length is not None
            )

        if isinstance(column_type, StringType) and column_type.unicode != info.unicode:
            column_type = replace(column_type, unicode=info.unicode)

        if info.precision is not None:
            if not isinstance(column_type, DecimalType):
                raise ModelBuildError(
                    f"Precision only applies to decimal members; {where} is {column_type.kind}",
                    entity=description.name, member=member.name
                )
            column_type = DecimalType(info.precision.precision, info.precision.scale)

        inc = info.incremental_key
        if inc is not None:
            if not isinstance(column_type, (Int32Type, Int64Type, GuidType)):
                raise ModelBuildError(
                    f"Incremental keys require an integer or GUID member; {where} is {column_type.kind}",
                    entity=description.name, member=member.name
                )
            if inc.sequence_name and isinstance(column_type, GuidType):
                raise ModelBuildError(
                    f"Sequence-backed incremental keys require an integer member: {where}",
                    entity=description.name, member=member.name
                )

        return column_type

    def _build_columns(self, table: DbTable, description: EntityDescription) -> None:
        for member in description.members:
            info = member.column
            column_type = self._resolve_type(description, member)

            # Nullable unless forced, part of the primary key, or incremental
            is_nullable = not (info.not_null or info.primary_key is not None
                               or info.incremental_key is not None)

            inc = info.incremental_key
            precision = column_type.precision if isinstance(column_type, DecimalType) else None
            scale = column_type.scale if isinstance(column_type, DecimalType) else None

            table.add_column(DbColumn(
                name=self._column_name(member),
                column_type=column_type,
                source_name=member.name,
                python_type=member.python_type,
                is_nullable=is_nullable,
                is_incremental_key=inc is not None,
                sequence_name=inc.sequence_name if inc else None,
                start_with=inc.start_with if inc else None,
                increment_by=inc.increment_by if inc else None,
                max_length=info.max_length,
                fixed_length=info.fixed_length,
                precision=precision,
                scale=scale,
                default_value=info.db_default,
            ))

    def _build_constraints(self, table: DbTable, description: EntityDescription) -> None:
        self._build_primary_key(table, description)
        self._build_uniques(table, description)
        self._build_indexes(table, description)
        self._build_checks(table, description)
        self._build_foreign_keys(table, description)

    def _build_primary_key(self, table: DbTable, description: EntityDescription) -> None:
        members = [m for m in description.members if m.column.primary_key is not None]
        if not members:
            return

        orders: Dict[int, str] = {}
        for member in members:
            order = member.column.primary_key.order
            if order in orders:
                raise ModelBuildError(
                    f"Duplicate primary key order {order} on {description.name}."
                    f"{orders[order]} and {description.name}.{member.name}",
                    entity=description.name, member=member.name
                )
            orders[order] = member.name

        members.sort(key=lambda m: m.column.primary_key.order)
        name = next((m.column.primary_key.name for m in members if m.column.primary_key.name), None)
        table.set_primary_key(DbPrimaryKey(
            name=name or f"PK_{table.name}",
            columns=[self._column_name(m) for m in members]
        ))

    def _build_uniques(self, table: DbTable, description: EntityDescription) -> None:
        groups: "OrderedDict[str, List[Tuple[int, MemberDescription, Optional[str], str]]]" = OrderedDict()
        for member in description.members:
            for uq in member.column.uniques:
                groups.setdefault(uq.group.casefold(), []).append((uq.order, member, uq.name, uq.group))

        for entries in groups.values():
            entries.sort(key=lambda e: e[0])
            group = entries[0][3]
            explicit = next((e[2] for e in entries if e[2]), None)
            if explicit:
                name = explicit
            elif group.upper().startswith("UQ_"):
                name = group
            else:
                name = f"UQ_{group}"
            table.uniques.append(DbUnique(name, [self._column_name(e[1]) for e in entries]))

    def _build_indexes(self, table: DbTable, description: EntityDescription) -> None:
        groups: "OrderedDict[str, List[Tuple[int, MemberDescription, bool, str]]]" = OrderedDict()
        for member in description.members:
            for ix in member.column.indexes:
                groups.setdefault(ix.name.casefold(), []).append((ix.order, member, ix.unique, ix.name))

        for entries in groups.values():
            entries.sort(key=lambda e: e[0])
            table.indexes.append(DbIndex(
                name=entries[0][3],
                columns=[self._column_name(e[1]) for e in entries],
                is_unique=any(e[2] for e in entries)
            ))

    def _build_checks(self, table: DbTable, description: EntityDescription) -> None:
        checks = list(description.checks)
        for member in description.members:
            checks.extend(member.column.checks)

        for ck in checks:
            name = ck.name or f"CK_{table.name}_{len(table.checks) + 1}"
            table.checks.append(DbCheck(name, ck.expression))

    def _build_foreign_keys(self, table: DbTable, description: EntityDescription) -> None:
        for member in description.members:
            fk = member.column.foreign_key
            if fk is None:
                continue

            ref = self._resolve_entity(fk.ref_entity, description, member)
            ref_member = ref.find_member(fk.ref_member)
            if ref_member is None:
                raise ModelBuildError(
                    f"Foreign key reference member not found: {ref.name}.{fk.ref_member}",
                    entity=description.name, member=member.name
                )

            ref_schema, ref_table = self._resolve_table(ref)
            column_name = self._column_name(member)
            table.foreign_keys.append(DbForeignKey(
                name=fk.name or f"FK_{table.name}_{ref_table}_{column_name}",
                columns=[column_name],
                ref_schema=ref_schema,
                ref_table=ref_table,
                ref_columns=[self._column_name(ref_member)],
                on_delete=fk.on_delete,
                on_update=fk.on_update,
            ))

    def _resolve_entity(self, ref: Any, description: EntityDescription,
                        member: MemberDescription) -> EntityDescription:
        if isinstance(ref, str):
            found = self._known.get(ref)
            if found is None:
                raise ModelBuildError(
                    f"Foreign key references unknown entity '{ref}'",
                    entity=description.name, member=member.name
                )
            return found
        return self._known.get(ref.__name__) or describe_entity(ref)
