"""Store admin navigation backend."""
