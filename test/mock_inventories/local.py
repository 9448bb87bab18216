hosts = [dict(name="local1", roles=["master"], url="local:"),
         dict(name="local2", roles=["agent"], url="local:"),
         dict(name="local3", roles=["agent"], url="local:")]
