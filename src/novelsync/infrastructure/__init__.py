"""Infrastructure layer: persistence, HTTP, plugins, notification providers, wiring."""
