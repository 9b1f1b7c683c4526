"""API Schemas - pydantic request/response models for the palette HTTP surface."""
