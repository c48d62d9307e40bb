# File: scaffoldgen/default_templates.py
"""
ScaffoldGen - Built-in Template Catalogue
==========================================
Default bodies for the five per-operation templates.  ``TemplateStore``
copies a body to ``<templates_dir>/<name>.tpl`` the first time the file is
missing, so a fresh project bootstraps itself; existing files are never
overwritten.

Every template renders a YAML API-operation definition against
``scaffoldgen.models.TemplateData``.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import List, Mapping

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.default_templates")


# Shared body-parameter block: one entry per writable column.
_BODY_PARAM = """\
    - name: "{{ field.name_snake }}"
      type: "{{ field.type }}"
      required: {{ (field.is_required if required is undefined else required) | to_string }}
{% if field.validation %}
      validation:
{% for key, value in field.validation | dictsort %}
        {{ key }}: {{ value | to_string }}
{% endfor %}
{% endif %}
{% if field.default is not none %}
      default: {{ field.default | to_string }}
{% endif %}
{% if field.comment %}
      description: {{ field.comment | quote }}
{% endif %}
"""

_PATH_ID_PARAM = """\
  path:
    - name: id
      type: {{ primary_key_type }}
      required: true
{% if primary_key_type in ("int", "int64") %}
      validation:
        min: 1
{% endif %}
      error_message: "A valid {{ entity_name }} id is required"
"""

ENTITY_NEW: str = """\
version: "1.0"
method: POST
path: "/{{ entity_name_plural }}/new"
description: "Create a new {{ entity_name }}"

auth:
  required: true
  permissions: ["{{ entity_name_plural }}.write"]

params:
  body:
{% for field in fields if not field.is_primary_key and not is_audit_field(field.name) %}
""" + _BODY_PARAM + """\
{% else %}
    []
{% endfor %}

commands:
{% for field in fields if not field.is_primary_key
      and (contains(to_lower_case(field.name), "email") or contains(to_lower_case(field.name), "username")) %}
  - type: validation
    sql: {{ ("SELECT COUNT(*) AS count FROM " ~ table_name ~ " WHERE " ~ field.name ~ " = :" ~ field.name_snake) | quote }}
    condition: "count > 0"
    on_true:
      action: stop
      http_code: 409
      message: "A {{ entity_name }} with that {{ field.name }} already exists"
{% endfor %}
{% set ns = namespace(columns=list(), values=list()) %}
{% for field in fields if not field.is_primary_key and not is_audit_field(field.name) %}
{% set ns.columns = append(ns.columns, field.name) %}
{% set ns.values = append(ns.values, ":" ~ field.name_snake) %}
{% endfor %}
{% if has_field(fields, "created_at") %}
{% set ns.columns = append(ns.columns, "created_at") %}
{% set ns.values = append(ns.values, "NOW()") %}
{% endif %}
{% if has_field(fields, "created_by") %}
{% set ns.columns = append(ns.columns, "created_by") %}
{% set ns.values = append(ns.values, ":user_id") %}
{% endif %}
  - type: exec
    sql: |
      INSERT INTO {{ table_name }} ({{ ns.columns | join(", ") }})
      VALUES ({{ ns.values | join(", ") }})
      RETURNING *

response:
  success:
    code: 201
    message: "{{ entity_name_title }} created"
  error:
    code: 400
    message: "Could not create {{ entity_name }}"
    sqlerror: true

hooks:
  after:
    - type: cache_invalidate
      keys: ["{{ entity_name_plural }}:list:*", "{{ entity_name_plural }}:search:*"]

audit:
  enabled: true
  log_params: true
  sensitive_fields: ["password", "token"]
"""

ENTITY_UPDATE: str = """\
version: "1.0"
method: PUT
path: "/{{ entity_name_plural }}/:id/update"
description: "Update {{ entity_name }}"

auth:
  required: true
  permissions: ["{{ entity_name_plural }}.write"]

params:
""" + _PATH_ID_PARAM + """\
  body:
{% set required = false %}
{% for field in fields if should_include_in_update(field) %}
""" + _BODY_PARAM + """\
{% else %}
    []
{% endfor %}

commands:
{% set where = primary_key ~ " = :id" %}
  - type: validation
    sql: {{ ("SELECT COUNT(*) AS count FROM " ~ table_name ~ " WHERE " ~ where
              ~ ((" AND " ~ soft_delete_filter) if soft_delete_filter else "")) | quote }}
    condition: "count = 0"
    on_true:
      action: stop
      http_code: 404
      message: "{{ entity_name_title }} not found"
{% set ns = namespace(assignments=list()) %}
{% for field in fields if should_include_in_update(field) %}
{% set ns.assignments = append(ns.assignments, field.name ~ " = COALESCE(:" ~ field.name_snake ~ ", " ~ field.name ~ ")") %}
{% endfor %}
{% if has_field(fields, "updated_at") %}
{% set ns.assignments = append(ns.assignments, "updated_at = NOW()") %}
{% endif %}
{% if has_field(fields, "updated_by") %}
{% set ns.assignments = append(ns.assignments, "updated_by = :user_id") %}
{% endif %}
  - type: exec
    sql: |
      UPDATE {{ table_name }} SET
        {{ ns.assignments | join(",\\n") | indent(8) }}
      WHERE {{ where }}
      RETURNING *

response:
  success:
    code: 200
    message: "{{ entity_name_title }} updated"

hooks:
  after:
    - type: cache_invalidate
      keys: ["{{ entity_name_plural }}:list:*", "{{ entity_name_plural }}:get:*"]
"""

ENTITY_DELETE: str = """\
version: "1.0"
method: DELETE
path: "/{{ entity_name_plural }}/:id/delete"
description: "Delete {{ entity_name }} ({{ 'soft delete' if soft_delete_assignments else 'hard delete' }})"

auth:
  required: true
  permissions: ["{{ entity_name_plural }}.delete"]

params:
""" + _PATH_ID_PARAM + """\

commands:
{% set where = primary_key ~ " = :id" %}
  - type: validation
    sql: {{ ("SELECT COUNT(*) AS count FROM " ~ table_name ~ " WHERE " ~ where) | quote }}
    condition: "count = 0"
    on_true:
      action: stop
      http_code: 404
      message: "{{ entity_name_title }} not found"
{% if soft_delete_assignments %}
{% if soft_delete_filter %}
  - type: validation
    sql: {{ ("SELECT COUNT(*) AS count FROM " ~ table_name ~ " WHERE " ~ where ~ " AND " ~ soft_delete_filter) | quote }}
    condition: "count = 0"
    on_true:
      action: stop
      http_code: 404
      message: "{{ entity_name_title }} not found or already inactive"
{% endif %}
  - type: exec
    sql: |
      UPDATE {{ table_name }} SET
        {{ soft_delete_assignments | join(",\\n") | indent(8) }}
      WHERE {{ where }}
{% else %}
  - type: exec
    sql: |
      DELETE FROM {{ table_name }}
      WHERE {{ where }}
{% endif %}

response:
  success:
    code: 200
    message: "{{ entity_name_title }} {{ 'deactivated' if soft_delete_assignments else 'deleted' }}"

hooks:
  after:
    - type: cache_invalidate
      keys: ["{{ entity_name_plural }}:list:*", "{{ entity_name_plural }}:get:*"]

audit:
  enabled: true
"""

_INCLUDES = """\
{% if includes %}

includes:
{% for relation in includes %}
  - relation: {{ relation.name }}
    type: {{ relation.cardinality }}
    kind: {{ relation.kind }}
    query: {{ relation.query | quote }}
{% endfor %}
{% endif %}
"""

ENTITY_LIST: str = """\
version: "1.0"
method: GET
path: "/{{ entity_name_plural }}/list"
description: "List {{ entity_name_plural }}"

auth:
  required: true
  permissions: ["{{ entity_name_plural }}.read"]

params:
  query:
    - name: page
      type: int
      default: 1
      validation:
        min: 1
    - name: limit
      type: int
      default: 20
      validation:
        min: 1
        max: 100
    - name: search
      type: string
      required: false

{% set ns = namespace(conditions=list(), searchable=list()) %}
{% for field in fields if not field.is_primary_key and field.type == "string" %}
{% if dialect == "mysql" %}
{% set ns.searchable = append(ns.searchable, field.name ~ " LIKE CONCAT('%', :search, '%')") %}
{% else %}
{% set ns.searchable = append(ns.searchable, field.name ~ " ILIKE '%' || :search || '%'") %}
{% endif %}
{% endfor %}
{% if soft_delete_filter %}
{% set ns.conditions = append(ns.conditions, soft_delete_filter) %}
{% endif %}
{% if ns.searchable %}
{% set ns.conditions = append(ns.conditions, "(:search IS NULL OR " ~ ns.searchable | join(" OR ") ~ ")") %}
{% endif %}
{% set where = ("WHERE " ~ ns.conditions | join(" AND ")) if ns.conditions else "" %}
commands:
  - type: query
    sql: |
      SELECT *
      FROM {{ table_name }}
{% if where %}
      {{ where }}
{% endif %}
      ORDER BY {{ primary_keys | join(", ") if primary_keys else primary_key }} ASC
      LIMIT :limit OFFSET :offset
    returns: "multiple"
    transform_params:
      offset: "(:page - 1) * :limit"

response:
  structure:
    type: paginated
    pagination:
      total_query: |
        SELECT COUNT(*)
        FROM {{ table_name }}
{% if where %}
        {{ where }}
{% endif %}
  success_code: 200
""" + _INCLUDES + """\

cache:
  enabled: true
  ttl: 60
  key: "{{ entity_name_plural }}:list:{page}:{limit}:{search}"
"""

ENTITY_GET: str = """\
version: "1.0"
method: GET
path: "/{{ entity_name_plural }}/:id/get"
description: "Get {{ entity_name }} by id"

auth:
  required: true
  permissions: ["{{ entity_name_plural }}.read"]

params:
""" + _PATH_ID_PARAM + """\

commands:
  - type: query
    sql: |
      SELECT *
      FROM {{ table_name }}
      WHERE {{ primary_key }} = :id
{% if soft_delete_filter %}
        AND {{ soft_delete_filter }}
{% endif %}
    returns: "single"
    on_result:
      if_not_found:
        action: "abort"
        message: "{{ entity_name_title }} not found"

response:
  success:
    code: 200
    message: "{{ entity_name_title }} found"
  error:
    code: 404
    message: "{{ entity_name_title }} not found"
""" + _INCLUDES + """\

cache:
  enabled: true
  ttl: 300
  key: "{{ entity_name_plural }}:get:{id}"

audit:
  enabled: true
"""

DEFAULT_TEMPLATES: Mapping[str, str] = MappingProxyType({
    "entity_new": ENTITY_NEW,
    "entity_update": ENTITY_UPDATE,
    "entity_delete": ENTITY_DELETE,
    "entity_list": ENTITY_LIST,
    "entity_get": ENTITY_GET,
})


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_TEMPLATES",
    "ENTITY_NEW",
    "ENTITY_UPDATE",
    "ENTITY_DELETE",
    "ENTITY_LIST",
    "ENTITY_GET",
]

logger.debug("scaffoldgen.default_templates loaded — %d templates.", len(DEFAULT_TEMPLATES))
