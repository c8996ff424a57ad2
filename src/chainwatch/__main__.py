import sys

from src.chainwatch.main import main

sys.exit(main())
