"""HTTP surface: health and quota endpoints, bot lifespan."""
