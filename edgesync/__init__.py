"""edgesync: keep an nginx stream proxy in step with a Docker Swarm.

Every poll interval the reconciler:
 - lists swarm services and reads their ``nginx.*`` routing labels
 - resolves the running tasks' addresses on the declared network
 - renders a sorted routing table into nginx.conf
 - rewrites the file and sends nginx SIGHUP, but only when the digest changes

nginx runs as a child process; if it exits, edgesync exits too.
"""

__version__ = "1.0.0"
