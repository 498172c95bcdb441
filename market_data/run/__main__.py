"""
Allow running as: python -m market_data.run
"""

import sys

from .cli import main

sys.exit(main())
