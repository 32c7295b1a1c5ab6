"""Allow ``python -m migration_lint``."""

from __future__ import annotations

from migration_lint.cli import main

if __name__ == "__main__":
    main()
