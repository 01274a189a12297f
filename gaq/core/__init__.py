"""Queue core: chain host, collaborators, storage and the bid queue"""
