__version__ = "0.1.0"

SDK_VERSION = f"aptabase-python@{__version__}"
