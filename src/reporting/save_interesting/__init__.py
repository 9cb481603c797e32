"""Save Interesting Files: selective tree export of tagged catalog entries."""

from .exporter import (  # noqa: F401
    CatalogLookup,
    ContentCopier,
    ExportFailure,
    ExportSummary,
    HitSource,
    TreeExporter,
    strip_output_argument,
)
from .module import SaveInterestingFilesModule  # noqa: F401
from .paths import (  # noqa: F401
    child_destination,
    directory_destination,
    entry_segment,
    file_destination,
    set_label_root,
)
