"""Help-session chat backend."""
