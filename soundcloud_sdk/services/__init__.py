"""Services Layer — response wrappers that compose requests (pagination)."""
