"""
Web UI for the UV dashboard.

Provides a NiceGUI-based page showing:
- Current UV index with severity colour and advice
- Today's maximum and the next 24 hours
- City selection and device geolocation
"""
