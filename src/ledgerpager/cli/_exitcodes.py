"""Process exit codes for the ledgerpager CLI."""

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
INVALID_REQUEST = 3
EXECUTION_FAILURE = 4
