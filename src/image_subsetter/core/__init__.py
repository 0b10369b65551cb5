"""Request-handling engine: bbox parsing, validation, resolution, rendering, responses."""
