"""
Tests for route_validator.rules

Covers:
  - validate_rules_file()   : schema validation (valid + invalid + parse errors)
  - RulesLoader.load()      : parsing named routes into RouteConfig
  - RulesLoader.validator() : building validators from loaded routes
"""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from fastapi import APIRouter, FastAPI, Request
from fastapi.testclient import TestClient

from route_validator.errors import RouteConfigError
from route_validator.middleware import ValidatedRoute, get_validated
from route_validator.rules import RuleIssue, RulesLoader, validate_rules_file
from route_validator.types import Scope


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_yaml(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data, sort_keys=False))
    return path


VALID_RULES = {
    "routes": {
        "create-item": {
            "description": "Create a new item",
            "params": {
                "category": {"isRequired": True, "isIn": ["lawn", "garden", "tools"]},
            },
            "body": {
                "name": {"isRequired": True, "trim": True, "description": "Display name"},
                "price": {"isCurrency": {"symbol": "$"}, "message": "Price must be an amount"},
            },
            "callNext": False,
        },
        "list-items": {
            "query": {"limit": {"isInt": {"min": 1}, "toInt": True}},
            "headers": {"X-Request-Id": {"isUUID": 4}},
        },
    }
}


@pytest.fixture
def rules_file(tmp_path):
    return _write_yaml(tmp_path / "rules.yaml", VALID_RULES)


# ---------------------------------------------------------------------------
# validate_rules_file
# ---------------------------------------------------------------------------


class TestValidateRulesFile:
    def test_valid_file(self, rules_file):
        assert validate_rules_file(rules_file) == []

    def test_missing_routes_key(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"paths": {}})
        issues = validate_rules_file(path)
        assert any("routes" in issue.message for issue in issues)

    def test_unknown_route_key(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"routes": {"a": {"cookies": {}}}})
        issues = validate_rules_file(path)
        assert len(issues) == 1
        assert issues[0].path == "routes/a"
        assert "cookies" in issues[0].message

    def test_wrong_types(self, tmp_path):
        path = _write_yaml(
            tmp_path / "rules.yaml",
            {"routes": {"a": {"callNext": "yes", "body": {"name": {"isRequired": "yes"}}}}},
        )
        paths = {issue.path for issue in validate_rules_file(path)}
        assert paths == {"routes/a/callNext", "routes/a/body/name/isRequired"}

    def test_field_rule_must_be_mapping(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"routes": {"a": {"query": {"limit": True}}}})
        assert validate_rules_file(path)[0].path == "routes/a/query/limit"

    def test_yaml_parse_error(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("routes: {a: [unclosed")
        issues = validate_rules_file(path)
        assert len(issues) == 1
        assert "YAML parse error" in issues[0].message

    def test_empty_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("")
        assert "empty" in validate_rules_file(path)[0].message

    def test_issue_str(self, tmp_path):
        issue = RuleIssue(file=tmp_path / "rules.yaml", message="bad", path="routes/a")
        assert str(issue) == f"[ERROR] {tmp_path / 'rules.yaml'} at routes/a: bad"


# ---------------------------------------------------------------------------
# RulesLoader
# ---------------------------------------------------------------------------


class TestRulesLoader:
    def test_load(self, rules_file):
        loader = RulesLoader(rules_file)
        routes = loader.load()

        assert list(routes) == ["create-item", "list-items"]
        create = routes["create-item"]
        assert [rule.name for rule in create.field_rules(Scope.BODY)] == ["name", "price"]
        assert create.field_rules(Scope.BODY)[1].message == "Price must be an amount"
        assert create.options.call_next is False
        assert routes["list-items"].field_rules(Scope.HEADERS)[0].name == "x-request-id"
        assert loader.descriptions == {"create-item": "Create a new item"}
        assert loader.list_routes() == ["create-item", "list-items"]

    def test_load_invalid_file_raises(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"routes": {"a": {"cookies": {}}}})
        with pytest.raises(RouteConfigError, match="cookies"):
            RulesLoader(path).load()

    def test_load_missing_file_raises(self, tmp_path):
        with pytest.raises(RouteConfigError, match="Cannot read"):
            RulesLoader(tmp_path / "missing.yaml").load()

    def test_get_loads_lazily(self, rules_file):
        assert RulesLoader(rules_file).get("list-items").field_rules(Scope.QUERY)[0].name == "limit"

    def test_get_unknown_route(self, rules_file):
        with pytest.raises(KeyError):
            RulesLoader(rules_file).get("delete-item")

    def test_validator_in_app(self, rules_file, registry):
        loader = RulesLoader(rules_file)
        app = FastAPI()
        router = APIRouter(route_class=ValidatedRoute)

        @router.post("/items/{category}")
        @loader.validator("create-item", registry)
        async def create_item(request: Request):
            return {"name": get_validated(request).body["name"]}

        app.include_router(router)
        client = TestClient(app)

        response = client.post("/items/tools", json={"name": "  Rake  ", "price": "$5.00"})
        assert response.status_code == 200
        assert response.json() == {"name": "Rake"}

        response = client.post("/items/tools", json={"name": "Rake", "price": "five"})
        assert response.json() == {"error": "Price must be an amount"}

        response = client.post("/items/kitchen", json={"name": "Rake"})
        assert response.json() == {"error": "params.category failed validation"}

    def test_validator_uses_default_registry(self, rules_file):
        validator = RulesLoader(rules_file).validator("list-items")
        assert validator.registry.is_registered("isUUID")
