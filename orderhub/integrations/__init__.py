"""External collaborators (blob storage)"""
