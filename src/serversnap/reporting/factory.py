"""
Factory for creating report renderers.
"""

import logging
from typing import Optional

from ..models.config import ReportConfig
from .base import ReportRenderer
from .html import HtmlRenderer
from .summary import SummaryRenderer

logger = logging.getLogger(__name__)


def create_renderer(format_type: str, report_config: Optional[ReportConfig] = None) -> ReportRenderer:
    """
    Create a renderer for the given report format.

    Args:
        format_type: Report format ('summary' or 'html')
        report_config: Rendering options shared by all formats

    Returns:
        ReportRenderer instance

    Raises:
        ValueError: If an unsupported format is specified
    """
    if format_type == "summary":
        logger.debug("Creating SummaryRenderer")
        return SummaryRenderer(report_config)
    elif format_type == "html":
        logger.debug("Creating HtmlRenderer")
        return HtmlRenderer(report_config)
    else:
        raise ValueError(f"Unsupported report format: {format_type}")
