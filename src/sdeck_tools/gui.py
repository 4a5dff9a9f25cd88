"""SDeck Tools desktop editor.

The editor shows one card per catalog slot.  Audio files are dropped
onto (or browsed into) a slot card, previewed inline, and removed again
individually or per slot.  The pack details form edits the metadata
written to ``pack.json``.  The header buttons import an existing pack
zip, export the manifest alone, or export the full zip.

All pack state lives in :class:`sdeck_tools.session.PackSession`; the
window only forwards user actions to it and redraws.  Imports and
exports run on a background thread, and editing controls are disabled
until they finish.

To launch the editor run:

.. code-block:: bash

    python -m sdeck_tools gui
"""

from __future__ import annotations

from sdeck_tools.ui.app import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
