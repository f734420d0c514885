# Local HTTP API for the vault
