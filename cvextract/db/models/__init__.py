# ORM models: import all so Base.metadata.create_all sees every table.
from cvextract.db.models.cv_document import CvDocument
from cvextract.db.models.job import Job

__all__ = ["CvDocument", "Job"]
