"""
Extract Module - Multi-strategy video URL extraction

Stage 1: URL classification (url_detector)
Stage 2: Strategy chain (extractors, strategy_runner)
"""
