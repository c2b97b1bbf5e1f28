"""Graph model, builder, filters and dispatching of dependency events."""
