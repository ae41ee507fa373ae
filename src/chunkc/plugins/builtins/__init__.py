"""Built-in plugins shipped with chunkc."""
