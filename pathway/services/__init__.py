"""Service layer: workflow logic shared by routers and the CLI."""
