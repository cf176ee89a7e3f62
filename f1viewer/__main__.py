import sys

from f1viewer.main import main


sys.exit(main())
