"""Allow ``python -m apogee``."""

from apogee.main import main

main()
