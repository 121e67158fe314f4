"""
Services - Neo4j gateway, feed, annotation orchestration
"""
