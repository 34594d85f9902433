"""Allow running as ``python -m p2p_datagen``."""

from .main import main

main()
