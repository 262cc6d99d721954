"""
Prometheus metrics definitions for FastAPI and Celery workers.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram, Gauge

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Ingestion metrics
embeddings_created_total = Counter(
    'embeddings_created_total',
    'Total embeddings created',
    ['content_type']
)

embeddings_rejected_total = Counter(
    'embeddings_rejected_total',
    'Total embeddings rejected at ingestion',
    ['reason']
)

# Search metrics
similarity_searches_total = Counter(
    'similarity_searches_total',
    'Total similarity searches',
    ['outcome']
)

similarity_search_duration_seconds = Histogram(
    'similarity_search_duration_seconds',
    'Similarity search duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

similarity_candidates_scanned = Histogram(
    'similarity_candidates_scanned',
    'Candidates scored per similarity search',
    buckets=[0, 10, 20, 50, 100, 200, 500, 1000, 5000, 10000]
)

# Maintenance metrics
maintenance_deleted_total = Counter(
    'maintenance_deleted_total',
    'Embeddings deleted by maintenance jobs',
    ['job_type']
)

maintenance_jobs_processing = Gauge(
    'maintenance_jobs_processing',
    'Number of maintenance jobs currently running',
    ['job_type']
)

maintenance_jobs_completed_total = Counter(
    'maintenance_jobs_completed_total',
    'Total maintenance jobs completed',
    ['job_type', 'status']
)

maintenance_jobs_failed_total = Counter(
    'maintenance_jobs_failed_total',
    'Total maintenance jobs failed',
    ['job_type']
)

maintenance_job_duration_seconds = Histogram(
    'maintenance_job_duration_seconds',
    'Maintenance job execution duration in seconds',
    ['job_type', 'status'],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0]
)
