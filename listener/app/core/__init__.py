"""Cross-cutting helpers shared by every layer of the listener."""
SERVICE_NAME = "listener"
