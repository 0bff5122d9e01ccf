import sys

from vnic_agent.cli import main

sys.exit(main())
