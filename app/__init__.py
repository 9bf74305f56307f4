"""HTTP host for the exporter"""
