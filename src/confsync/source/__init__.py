"""Access to the remote Confluence REST and JSON-RPC APIs."""
