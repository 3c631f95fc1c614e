"""Load named route configurations from a rules YAML file."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from route_validator.config import RouteConfig
from route_validator.errors import RouteConfigError
from route_validator.middleware import RouteValidator
from route_validator.registry import ValidatorRegistry, get_default_registry
from route_validator.rules.schema import check_document, read_rules_document

logger = logging.getLogger(__name__)


class RulesLoader:
    """Loads and parses route configurations from a rules file.

    Usage:
        loader = RulesLoader(Path("rules.yaml"))
        loader.load()

        @router.post("/items/{category}")
        @loader.validator("create-item")
        async def create_item(request: Request, category: str):
            ...
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.routes: dict[str, RouteConfig] = {}
        self.descriptions: dict[str, str] = {}

    def load(self) -> dict[str, RouteConfig]:
        """Load every route in the file.

        Raises:
            RouteConfigError: If the file cannot be parsed, fails the schema,
                or holds a route config with an invalid shape
        """
        document, issues = read_rules_document(self.path)
        if not issues:
            issues = check_document(self.path, document)
        if issues:
            details = "\n".join(f"  {issue}" for issue in issues)
            raise RouteConfigError(f"Invalid rules file {self.path}:\n{details}")

        routes: dict[str, RouteConfig] = {}
        descriptions: dict[str, str] = {}
        for name, spec in document["routes"].items():
            routes[name] = self._parse_route(name, spec)
            if "description" in spec:
                descriptions[name] = spec["description"]

        self.routes = routes
        self.descriptions = descriptions
        logger.debug("Loaded %d route config(s) from %s", len(routes), self.path)
        return routes

    def _parse_route(self, name: str, spec: Mapping[str, Any]) -> RouteConfig:
        data = {key: value for key, value in spec.items() if key != "description"}
        try:
            return RouteConfig.from_dict(data)
        except RouteConfigError as exc:
            raise RouteConfigError(f"Route {name!r} in {self.path}: {exc}") from exc

    def get(self, name: str) -> RouteConfig:
        """Get a loaded route config by name.

        Raises:
            KeyError: If no route with that name was loaded
        """
        if not self.routes:
            self.load()
        if name not in self.routes:
            raise KeyError(f"Route {name!r} not found in {self.path}")
        return self.routes[name]

    def validator(
        self,
        name: str,
        registry: ValidatorRegistry | None = None,
    ) -> RouteValidator:
        """Build the RouteValidator for a named route."""
        return RouteValidator(self.get(name), registry or get_default_registry())

    def list_routes(self) -> list[str]:
        """Names of the loaded routes, in file order."""
        return list(self.routes)
