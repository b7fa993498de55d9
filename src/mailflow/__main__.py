#!/usr/bin/env python3
"""
Allow running mailflow as a module: python -m mailflow

This enables the following usage:
    python -m mailflow [OPTIONS] COMMAND

Which is equivalent to:
    mailflow [OPTIONS] COMMAND
"""

from mailflow.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
