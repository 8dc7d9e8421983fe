"""
Kube Auth Mock service package.

Exposes a FastAPI application that emulates the Kubernetes token review API
for tests of systems that authenticate Kubernetes workloads:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.registry: Token -> service account registry behind a reader-writer lock.
- app.issuer: Mock service account token issuance (RS256, throwaway keys).
- app.services: Registration, token review and reset operations.

Design notes:
- All state is in memory and lost on restart.
- Tokens are authenticated by registry membership only; their signing keys
  are never kept, so no signature check is possible or attempted.
"""
