# Domain models for schema documents and compiled tools
