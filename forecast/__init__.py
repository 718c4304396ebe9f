"""ENTSO-E forecast retrieval and renewable surplus engine."""
