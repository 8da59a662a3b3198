"""SQL Server connectivity: client, introspection, store and procedure runner."""
