#!/usr/bin/env python
"""Entry point for the outreach studio CLI."""

# Load .env file before anything else
from dotenv import load_dotenv
load_dotenv()

from outreach_studio.core.cli import main

if __name__ == "__main__":
    main()
