"""
Sleep Tracker backend.

Flask API for recording nights of sleep, chart-ready sleep statistics and
streamed AI sleep advice from Gemini.
"""
