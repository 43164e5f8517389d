#!/usr/bin/env python3
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from acl_audit.cli.main import app

if __name__ == "__main__":
    app()
