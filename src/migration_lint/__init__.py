"""Lint and autofix GraphQL field resolver annotations in Contentful migration scripts.

The package exposes one rule, ``enforce-contentful-cloudinary-graphql-field-resolver``,
published under the ``contentful-migrations`` plugin namespace.
"""

from __future__ import annotations

from typing import Final

__all__ = ["PLUGIN_NAME", "RECOMMENDED_RULES", "__version__"]

__version__: Final[str] = "1.0.0"

PLUGIN_NAME: Final[str] = "contentful-migrations"

RECOMMENDED_RULES: Final[dict[str, str]] = {
    f"{PLUGIN_NAME}/enforce-contentful-cloudinary-graphql-field-resolver": "error",
}
