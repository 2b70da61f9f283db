"""Service layer: blocking facade over the client, returning ServiceResult."""
