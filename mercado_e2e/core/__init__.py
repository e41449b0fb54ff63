"""Core harness components: HTTP client, data factory, validation, orchestration and reporting"""
