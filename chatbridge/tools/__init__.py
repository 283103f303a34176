"""Tool framework. Import tool modules here to register them."""

# Import tool modules so their @registry.tool() decorators execute.
# To add a new integration, create a file in chatbridge/tools/ and add an import here.
from chatbridge.config import settings
from chatbridge.tools.registry import registry

# Conditionally load web research tools when Brave Search API key is configured.
if settings.brave_search_api_key:
    from chatbridge.tools import web_tools  # noqa: F401

# Conditionally load YouTube tools when the Data API key is configured.
if settings.youtube_api_key:
    from chatbridge.tools import youtube_tools  # noqa: F401

__all__ = ["registry"]
