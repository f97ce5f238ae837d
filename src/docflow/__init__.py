"""docflow: a document-centric workflow engine.

Models the life cycle of a document type as a state graph and applies
document events as atomic, at-most-once transitions.
"""

__version__ = "0.1.0"

from docflow.engine.config import DocflowSettings

__all__ = ["__version__", "DocflowSettings"]
