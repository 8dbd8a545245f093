"""
connectors — per-user connections to external identity providers.

Provides:
  • a registry of provider connection factories
  • ranked, per-user connection storage with encrypted secrets
  • interceptors around connection create / update / remove
  • lookup of the local users behind a provider identity
  • the provider sign-in attempt carried across a signup

Each provider (GitHub, Google, …) is a subclass of ConnectionFactory.
"""
