"""SecureCoda document source package.

    from securecoda.source import DocumentSource, create_document_source
"""

from securecoda.source.factory import create_document_source
from securecoda.source.protocol import DocumentSource

__all__ = ["DocumentSource", "create_document_source"]
