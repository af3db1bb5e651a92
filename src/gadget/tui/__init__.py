"""Interactive session: controller, background tasks, and the Textual front-end."""
