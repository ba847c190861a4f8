"""Tests for input schema synthesis and tool descriptions."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from openapi_mcp.openapi.builder import build_description, build_input_fields, build_input_model
from openapi_mcp.openapi.html import contains_html, html_to_markdown, normalize_description
from openapi_mcp.openapi.models import InputField, SchemaKind
from openapi_mcp.openapi.runtime import resolve_parameters

# =============================================================================
# Input fields
# =============================================================================


class TestBuildInputFields:
    def test_path_and_query_parameters(self, pet_spec):
        op = pet_spec["paths"]["/pet/{petId}"]["get"]
        fields = build_input_fields(resolve_parameters(op, pet_spec), op)

        assert [f.name for f in fields] == ["petId", "fields"]
        pet_id, extra = fields
        assert pet_id.kind is SchemaKind.INTEGER
        assert pet_id.required is True
        assert pet_id.description == "Pet identifier"
        assert extra.kind is SchemaKind.ARRAY
        assert extra.required is False

    def test_body_properties_follow_parameters(self, pet_spec):
        op = pet_spec["paths"]["/pet/{petId}"]["put"]
        fields = build_input_fields(resolve_parameters(op, pet_spec), op)

        assert [f.name for f in fields] == ["petId", "name", "status"]
        by_name = {f.name: f for f in fields}
        assert by_name["name"].required is True
        assert by_name["status"].enum == ("available", "sold")
        # The path parameter keeps its own definition.
        assert by_name["petId"].kind is SchemaKind.INTEGER

    def test_header_and_cookie_parameters_not_exposed(self):
        op = {
            "parameters": [
                {"name": "X-Token", "in": "header"},
                {"name": "session", "in": "cookie"},
                {"name": "q", "in": "query"},
            ]
        }
        fields = build_input_fields(resolve_parameters(op, {}), op)
        assert [f.name for f in fields] == ["q"]

    def test_unknown_type_is_string(self):
        op = {"parameters": [{"name": "when", "in": "query", "schema": {"type": "object"}}, {"name": "x", "in": "query"}]}
        fields = build_input_fields(resolve_parameters(op, {}), op)
        assert all(f.kind is SchemaKind.STRING for f in fields)

    def test_non_string_enum_ignored(self):
        op = {"parameters": [{"name": "level", "in": "query", "schema": {"type": "integer", "enum": [1, 2]}}]}
        (field,) = build_input_fields(resolve_parameters(op, {}), op)
        assert field.enum == ()
        assert field.kind is SchemaKind.INTEGER

    def test_other_content_types_ignored(self):
        op = {
            "requestBody": {
                "content": {"application/xml": {"schema": {"properties": {"doc": {"type": "string"}}}}}
            }
        }
        assert build_input_fields([], op) == []

    def test_html_descriptions_converted(self):
        op = {"parameters": [{"name": "q", "in": "query", "description": "<b>Search</b> text"}]}
        (field,) = build_input_fields(resolve_parameters(op, {}), op)
        assert field.description == "**Search** text"

        (raw,) = build_input_fields(resolve_parameters(op, {}), op, convert_html=False)
        assert raw.description == "<b>Search</b> text"


# =============================================================================
# Pydantic input model
# =============================================================================


class TestBuildInputModel:
    def test_json_schema_shape(self):
        model = build_input_model(
            "messages",
            [
                InputField("query", SchemaKind.STRING, description="Search text"),
                InputField("limit", SchemaKind.INTEGER, required=True),
                InputField("flag", SchemaKind.BOOLEAN),
                InputField("tags", SchemaKind.ARRAY),
            ],
        )
        schema = model.model_json_schema()

        assert schema["type"] == "object"
        assert list(schema["properties"]) == ["query", "limit", "flag", "tags"]
        assert schema["required"] == ["limit"]
        assert schema["properties"]["query"]["description"] == "Search text"
        limit_types = {s["type"] for s in schema["properties"]["limit"]["anyOf"]}
        assert limit_types == {"integer", "number"}

    def test_no_fields_gives_empty_object(self):
        schema = build_input_model("health", []).model_json_schema()
        assert schema["type"] == "object"
        assert schema["properties"] == {}
        assert "required" not in schema

    def test_enum_restricts_values(self):
        model = build_input_model("pet", [InputField("status", enum=("available", "sold"), required=True)])
        assert model.model_validate({"status": "sold"}).model_dump(by_alias=True) == {"status": "sold"}
        with pytest.raises(ValidationError):
            model.model_validate({"status": "lost"})

    def test_missing_required_rejected(self):
        model = build_input_model("channels", [InputField("url", required=True)])
        with pytest.raises(ValidationError):
            model.model_validate({})

    def test_optional_fields_accept_absence_and_null(self):
        model = build_input_model("messages", [InputField("limit", SchemaKind.INTEGER)])
        assert model.model_validate({}).model_dump(by_alias=True, exclude_unset=True) == {}
        assert model.model_validate({"limit": None}).model_dump(by_alias=True) == {"limit": None}

    def test_numbers_keep_their_value(self):
        model = build_input_model("messages", [InputField("limit", SchemaKind.NUMBER)])
        assert model.model_validate({"limit": 10}).model_dump(by_alias=True)["limit"] == 10
        assert model.model_validate({"limit": 2.5}).model_dump(by_alias=True)["limit"] == 2.5

    def test_awkward_names_keep_their_alias(self):
        model = build_input_model(
            "odd",
            [
                InputField("X-Request-Id"),
                InputField("class"),
                InputField("schema"),
                InputField("1st"),
            ],
        )
        schema = model.model_json_schema()
        assert list(schema["properties"]) == ["X-Request-Id", "class", "schema", "1st"]

        data = model.model_validate({"class": "a", "schema": "b", "1st": "c"})
        assert data.model_dump(by_alias=True, exclude_unset=True) == {"class": "a", "schema": "b", "1st": "c"}


# =============================================================================
# Descriptions
# =============================================================================


class TestDescriptions:
    def test_summary_and_description(self):
        op = {"summary": "List pets", "description": "Returns every pet"}
        assert build_description(op, "get", "/pets") == "List pets. Returns every pet"

    def test_summary_only(self):
        assert build_description({"summary": "List pets"}, "get", "/pets") == "List pets"

    def test_fallback(self):
        assert build_description({}, "delete", "/pet/{petId}") == "API DELETE /pet/{petId}"

    def test_html_description(self):
        op = {"description": "<p>See <a href=\"https://x.test\">docs</a></p>"}
        assert build_description(op, "get", "/x") == "See [docs](https://x.test)"


class TestHtml:
    def test_contains_html(self):
        assert contains_html("<p>hi</p>")
        assert contains_html("line<br/>break")
        assert not contains_html("a < b and c > d")
        assert not contains_html(None)

    def test_html_to_markdown(self):
        assert html_to_markdown("<p>Hello <b>world</b></p>") == "Hello **world**"
        assert html_to_markdown("<h2>Title</h2>") == "## Title"

    def test_plain_text_untouched(self):
        assert normalize_description("plain text") == "plain text"
        assert normalize_description(None) is None
        assert normalize_description("<i>x</i>", convert_html=False) == "<i>x</i>"
