"""HTTP boundary of the proxy."""
