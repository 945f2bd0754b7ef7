"""
Growthline knowledge base.

Contains clinical reference data:
- WHO Child Growth Standards (weight, length/height, head circumference)
"""
