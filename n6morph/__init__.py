# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
*n6morph* -- casting loosely-typed data (mappings decoded from JSON,
other structs, database rows) into typed and validated structs of
SQLAlchemy-mapped classes or table-less embedded schemas, with
changesets; plus helpers to project structs into mappings and to
filter mappings by schema fields.
"""


from n6morph.casting import (
    cast,
    cast_assoc,
    cast_embed,
)
from n6morph.changeset import Changeset
from n6morph.config import (
    configure,
    get_config,
)
from n6morph.exceptions import (
    AssociationNotLoadedError,
    ConfigError,
    FieldValueError,
    FieldValueTooLongError,
    InvalidChangesetError,
    SchemaError,
)
from n6morph.morph import (
    cast_to_struct,
    deep_filter_by_schema_fields,
    deep_map_from_struct,
    filter_by_schema_fields,
    generate_changeset,
    into_struct,
    map_from_struct,
    update_struct,
    validate_nested_changeset,
)
from n6morph.schema import (
    NOT_LOADED,
    Embedded,
    EmbeddedSchema,
    embeds_many,
    embeds_one,
    get_schema_info,
)


__all__ = [
    'cast',
    'cast_assoc',
    'cast_embed',

    'Changeset',

    'configure',
    'get_config',

    'AssociationNotLoadedError',
    'ConfigError',
    'FieldValueError',
    'FieldValueTooLongError',
    'InvalidChangesetError',
    'SchemaError',

    'cast_to_struct',
    'deep_filter_by_schema_fields',
    'deep_map_from_struct',
    'filter_by_schema_fields',
    'generate_changeset',
    'into_struct',
    'map_from_struct',
    'update_struct',
    'validate_nested_changeset',

    'NOT_LOADED',
    'Embedded',
    'EmbeddedSchema',
    'embeds_many',
    'embeds_one',
    'get_schema_info',
]
