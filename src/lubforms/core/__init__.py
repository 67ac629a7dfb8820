"""
lubforms core: definition model, errors and configuration.
"""
