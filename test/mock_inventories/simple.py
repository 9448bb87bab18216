from testbed.inventory import HostDeclaration

hosts = [HostDeclaration(name="web1", roles=["master"], ip="10.0.0.1"),
         dict(name="web2", roles=["agent"], url="local:"),
         "db1"]
