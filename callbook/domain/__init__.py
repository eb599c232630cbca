"""Domain packages - each with schemas, repository, service and router modules"""
