"""Allow ``python -m pseudoflow``."""

from pseudoflow.main import main

raise SystemExit(main())
