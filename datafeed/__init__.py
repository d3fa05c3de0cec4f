"""Local candle loading and normalisation."""
