"""Poll MarineTraffic public map tiles and stream normalized vessel deltas."""
