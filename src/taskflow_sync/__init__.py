# src/taskflow_sync/__init__.py

__version__ = "0.1.0"
