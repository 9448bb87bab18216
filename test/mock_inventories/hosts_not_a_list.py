hosts = "web1"
