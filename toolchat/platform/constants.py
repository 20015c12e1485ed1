"""Service-wide constants."""

from importlib.metadata import PackageNotFoundError, version

SERVICE_NAME = "toolchat"

try:
    SERVICE_VERSION = version(SERVICE_NAME)
except PackageNotFoundError:
    SERVICE_VERSION = "0.0.0"

USER_AGENT = f"{SERVICE_NAME}/{SERVICE_VERSION}"

# Wire framing for the chat event stream
SSE_DATA_PREFIX = "data: "
SSE_LINE_DELIMITER = "\n\n"
SSE_DONE_SENTINEL = "[DONE]"
