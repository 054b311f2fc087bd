"""Domain services: registry, preferences, toolkits, agents, connections, authorization."""
