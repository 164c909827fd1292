"""
Resolver mapping templates.

Request and response mapping templates are rendered from the Jinja2
templates in templates/resolvers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jinja2

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "resolvers"

MAPPING_TEMPLATE_VERSION = "2017-02-28"

DEFAULT_PAGE_LIMIT = 10

RESPONSE_TEMPLATE = "$util.toJson($ctx.result)"


class ResolverTemplates:
    """Renders resolver mapping templates for DynamoDB-backed operations."""

    OPERATIONS = ("GetItem", "Scan", "PutItem", "UpdateItem", "DeleteItem")

    def __init__(self):
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            lstrip_blocks=True,
            trim_blocks=True,
            undefined=jinja2.StrictUndefined,
        )

    def request(self, operation: str, key: str = "id", **extra: Any) -> str:
        """Render the request mapping template for a data source operation."""
        if operation not in self.OPERATIONS:
            raise ValueError(f"Unsupported resolver operation '{operation}'")
        template = self.jinja_env.get_template(f"{operation}.req.vtl.jinja2")
        return template.render(version=MAPPING_TEMPLATE_VERSION, key=key, default_limit=DEFAULT_PAGE_LIMIT, **extra)

    def response(self) -> str:
        return RESPONSE_TEMPLATE

    def authorization(self, operation: str, strategies: list[str]) -> str:
        """Render the authorization check prepended to a request template."""
        return self.jinja_env.get_template("auth.vtl.jinja2").render(operation=operation, strategies=strategies)
