"""
monolive - live camera front-end for a monocular ORB-SLAM3 tracking session.
"""
__version__ = "0.3.0"
