"""Address geocoding with provider fallback, confidence scoring, and a usage-weighted cache."""
