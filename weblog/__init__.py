# ==============================================================================
# Weblog Session Analytics
# ==============================================================================
"""
Session segmentation and engagement metrics for web access logs.
"""
