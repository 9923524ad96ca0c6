"""
Serving — FastAPI application for uploading documents and searching them.
"""
