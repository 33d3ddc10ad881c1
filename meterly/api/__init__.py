"""HTTP boundary that feeds the pipeline."""
