"""
Motion Meter
Estimates linear displacement of a handheld device by integrating
accelerometer samples over a fixed window
"""

__version__ = '1.0.0'
