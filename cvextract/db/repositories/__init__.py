from cvextract.db.repositories.cv_document_repo import CvDocumentRepo
from cvextract.db.repositories.job_repo import JobRepo

__all__ = ["CvDocumentRepo", "JobRepo"]
