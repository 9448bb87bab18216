hosts = ["web1", dict(name="web1")]
