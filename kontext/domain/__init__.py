"""Domain layer: records, mirrors, collection schemas and exceptions."""
