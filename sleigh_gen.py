#!/usr/bin/env python3
"""Command-line interface for the SLEIGH processor module generator."""

from __future__ import annotations

from sleighgen.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
