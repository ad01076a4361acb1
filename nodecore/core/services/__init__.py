"""Core services — one module per step of the core update workflow."""
