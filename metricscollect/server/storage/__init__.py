"""Storage contract and the in-memory backend for server metrics."""