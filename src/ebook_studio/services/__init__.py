"""Service layer: persistence, AI capabilities, orchestration and packaging."""
