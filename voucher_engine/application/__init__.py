"""Application layer: ports, services and DTOs of the voucher engine."""
