"""Constants for the document store client."""

__version__ = "0.1.0"

DOCUMENT_ENDPOINT = "{base_url}/documents/{collection}/{doc_id}"
COLLECTION_ENDPOINT = "{base_url}/documents/{collection}"
QUERY_ENDPOINT = "{base_url}/documents:runQuery"
COMMIT_ENDPOINT = "{base_url}/documents:commit"

HEADER_AUTHORIZATION = "Authorization"
HEADER_CLIENT = "X-Schedule-Client"
CLIENT_ID = f"shared-schedule/{__version__}"

DEFAULT_THROTTLE_SECONDS = 0.1
DEFAULT_POLL_SECONDS = 5.0

FILTER_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">="})
