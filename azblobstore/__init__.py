"""
azblobstore: Azure Blob Storage adapter for a generic async object store interface.
"""

__version__ = "0.1.0"

from .core.builder import MicrosoftAzureBuilder
from .services.blob.store import MicrosoftAzure

__all__ = ["MicrosoftAzureBuilder", "MicrosoftAzure", "__version__"]
