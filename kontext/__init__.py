"""kontext: proxy, realtime mirror and cache invalidation for the content backend."""
