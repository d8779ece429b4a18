"""Extraction of the dai/cts submission parameters.

Once the protection layer notices that the challenge script never ran, it
renders an error page inside its resource frame. That markup embeds the
script the layer itself would use to post a solved answer, including the
URL carrying the session-scoped dai and cts tokens.
"""

from typing import Optional

from ...browser.interfaces import IFrame, IPage
from ...config.logger import logger
from ...exceptions import MarkupExtractionFailed
from .interfaces import SessionSubmissionParams

SUBMISSION_URL_MARKER = "/_Incapsula_Resource?SWCGHOEL=gee&"
SUBMISSION_URL_TERMINATOR = '", true);'


def _between(text: str, start: str, end: Optional[str] = None) -> str:
    head, sep, tail = text.partition(start)
    if not sep:
        raise MarkupExtractionFailed(f"marker {start!r} not found in markup")
    if end is None:
        return tail

    value, sep, _ = tail.partition(end)
    if not sep:
        raise MarkupExtractionFailed(f"terminator {end!r} not found in markup")
    return value


def parse_submission_params(markup: str) -> SessionSubmissionParams:
    """Parse dai and cts out of the protection layer's error markup.

    The query string following SUBMISSION_URL_MARKER up to the XHR open()
    terminator holds both tokens: dai runs up to the next '&', cts runs to
    the end of the query string.

    Raises:
        MarkupExtractionFailed: If any marker is missing or a token is empty.
    """
    query = _between(markup, SUBMISSION_URL_MARKER, SUBMISSION_URL_TERMINATOR)
    dai = _between(query, "dai=").split("&", 1)[0]
    cts = _between(query, "&cts=")

    if not dai or not cts:
        raise MarkupExtractionFailed("empty dai or cts in submission URL")

    return SessionSubmissionParams(dai=dai, cts=cts)


def find_resource_frame(page: IPage, frame_marker: str = "Incapsula_Resource") -> Optional[IFrame]:
    return next(
        (frame for frame in page.frames() if frame_marker in frame.url),
        None
    )


async def extract_submission_params(
    page: IPage,
    frame_marker: str = "Incapsula_Resource",
    selector: str = ".error-content"
) -> SessionSubmissionParams:
    """Read the resource frame's error markup and parse it.

    No retries: the caller decides when the markup should be there.

    Raises:
        MarkupExtractionFailed: If the frame, the element or the markers
            cannot be found.
    """
    frame = find_resource_frame(page, frame_marker)
    if frame is None:
        raise MarkupExtractionFailed(f"no frame with '{frame_marker}' in its URL")

    markup = await frame.inner_html(selector)
    if markup is None:
        raise MarkupExtractionFailed(f"no '{selector}' element in {frame.url}")

    params = parse_submission_params(markup)
    logger.info("submission_params_extracted", frame=frame.url, dai=params.dai)
    return params
