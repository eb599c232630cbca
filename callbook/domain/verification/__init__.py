"""Phone verification (one-time codes) for public writes"""
