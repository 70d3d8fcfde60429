from clearcase.remote.base import GrammarClient, GrammarResult, OrganizerClient
from clearcase.remote.http_client import HttpGrammarClient, HttpOrganizerClient

__all__ = [
    "GrammarClient",
    "GrammarResult",
    "HttpGrammarClient",
    "HttpOrganizerClient",
    "OrganizerClient",
]
