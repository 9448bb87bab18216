# The hosts of the test fleet. Each host is either just a name, a dict
# or a HostDeclaration. Hosts without an url are reached via ssh://{name}.
#
# Run a command on the only master:
#     testbed -f master example/inventory.py -- uname -a
# Bring up all hosts with vagrant, run on all agents in parallel, destroy:
#     testbed --provision --parallel -f agent example/inventory.py -- puppet agent -t

from testbed.inventory import HostDeclaration

hosts = [HostDeclaration(name="master", roles=["master", "database"], box="centos-64-x64"),
         dict(name="agent1", roles=["agent"], box="centos-64-x64"),
         dict(name="agent2", roles=["agent"], box="ubuntu-1204-x64",
              box_url="http://puppet-vagrant-boxes.puppetlabs.com/ubuntu-server-12042-x64-vbox4210.box")]

hypervisor = "vagrant"
hypervisor_options = {"vagrant_dir": "."}
