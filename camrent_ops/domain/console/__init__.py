"""Console domain - per-session dialog state and HTTP surface"""
