"""Services — runtime registry and shortcut bundles."""
