from invoke import Collection

from photogallery.cli.batch_upload import batch_upload
from photogallery.cli.cleanup_storage import cleanup_storage

ns = Collection(batch_upload, cleanup_storage)
