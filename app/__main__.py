"""
Run the task manager CLI as a module:

    python -m app classify --title "Pay invoice"
    python -m app serve --port 3000
"""

import sys

from app.cli import main

if __name__ == "__main__":
    sys.exit(main())
