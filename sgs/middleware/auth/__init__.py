"""Authentication: session tokens and the request authorization gateway."""
