"""FloatMap: aggregated ARGO float CSV data served from an in-memory cache."""
