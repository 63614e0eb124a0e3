"""Dashboard builder core: document model, command engine, data binding and rendering."""
