"""Pure domain logic: the permission catalog and role value objects."""
