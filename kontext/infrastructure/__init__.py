"""Infrastructure: record backend client, realtime channel and cache stores."""
