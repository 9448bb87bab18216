hosts = [dict(name="web1", roles=["master"], box="centos-64", box_url="http://example.com/centos-64.box"),
         dict(name="web2", roles=["agent"], box="centos-64")]

hypervisor = "vagrant"
hypervisor_options = {"vagrant_dir": "."}
