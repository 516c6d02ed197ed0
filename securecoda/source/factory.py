"""Document source factory — source selection and initialization.

Selection logic:
  1. config.demo_mode (USE_DEMO_DATA=true, or no Coda API token) → DemoSource
  2. Otherwise                                                 → CodaSource
"""

from __future__ import annotations

from securecoda.config import Config
from securecoda.source.protocol import DocumentSource
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)


def create_document_source(config: Config) -> DocumentSource:
    """Create the document source for the configured mode.

    The API token is never logged; only the base URL is.
    """
    if config.demo_mode:
        from securecoda.source.demo import DemoSource

        logger.info("document_source_selected", source="DemoSource", mode="demo")
        return DemoSource()

    from securecoda.source.coda import CodaSource

    logger.info(
        "document_source_selected",
        source="CodaSource",
        mode="live",
        base_url=config.source.base_url,
    )
    return CodaSource(config.source)
