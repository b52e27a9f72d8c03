"""
juicegen/__main__.py
====================

Entry point for ``python -m juicegen`` and the ``juicegen`` console script.

Pipeline
--------

    Go package (--dir)         juice.xml (--config)
        │                          │
        ▼                          ▼
    ┌──────────────┐         ┌──────────────┐
    │  parser      │         │  registry    │
    │  Interface   │         │  Statements  │
    └────┬─────────┘         └────┬─────────┘
         └───────────┬────────────┘
                     ▼
             ┌──────────────┐
             │  impl        │   method bodies (function)
             │  assembler   │   canonical layout (formatting)
             └────┬─────────┘
                  ▼
             output (file or stdout)
"""

import sys

from juicegen.cli import main

__all__ = ["main"]

if __name__ == "__main__":
    sys.exit(main())
