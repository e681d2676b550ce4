"""Career plan cache and step lifecycle backend."""
