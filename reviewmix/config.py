from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
RAW_DIR = DATA_DIR / "raw"
PROCESSED_DIR = DATA_DIR / "processed"

OUTPUTS_DIR = PROJECT_ROOT / "outputs"
FIGURES_DIR = OUTPUTS_DIR / "figures"
TABLES_DIR = OUTPUTS_DIR / "tables"
MODELS_DIR = OUTPUTS_DIR / "models"
LOGS_DIR = OUTPUTS_DIR / "logs"

RAW_DB_FILE = RAW_DIR / "database.sqlite"
MODELING_FILE = PROCESSED_DIR / "reviews_modeling.parquet"

# Dataset and experiment identifiers (used in outputs/ metadata)
DATASET_VERSION = "album_reviews_modeling_v1"
EXPERIMENT_NAMESPACE = "genre_year_mixed_v1"

# Source tables and the columns each must provide after canonicalization.
REVIEW_COLUMNS = [
    "review_id",
    "title",
    "score",
    "is_best_new_music",
    "author",
    "author_type",
    "publication_date",
    "publication_year",
]
ARTIST_COLUMNS = ["review_id", "artist"]
GENRE_COLUMNS = ["review_id", "genre"]

# Public dataset spelling -> analysis spelling.
COLUMN_ALIASES = {
    "reviewid": "review_id",
    "best_new_music": "is_best_new_music",
    "pub_date": "publication_date",
    "pub_year": "publication_year",
}

# Analysis columns in the processed parquet
TARGET_COL = "score"
GENRE_COL = "genre"
YEAR_COL = "publication_year"
YEAR_Z_COL = "year_z"
GROUP_COL = "author"

MODELING_COLUMNS = [
    "review_id",
    "title",
    "artist",
    "genre",
    "score",
    "is_best_new_music",
    "author",
    "author_type",
    "publication_year",
    "year_z",
]

# Editorial choices tied to the collection date of the dataset, not guarantees.
# A score is "low" when strictly below the threshold.
LOW_SCORE_THRESHOLD = 4.0
# Keep publication_year < YEAR_CUTOFF (the final collection year is incomplete).
YEAR_CUTOFF = 2017

# Random-intercept variance needs at least this much support per genre level.
MIN_GENRE_AUTHORS = 2
MIN_GENRE_OBS = 2

# Estimation. ML (not REML) so information criteria compare across fixed-effect structures.
REML = False
MIXEDLM_METHODS = ["lbfgs", "bfgs"]
# Derivative-free retry for fits that land on the zero-variance boundary.
MIXEDLM_FALLBACK_METHODS = ["powell", "nm"]
MIXEDLM_MAXITER = 500
CI_LEVEL = 0.95

RANDOM_SEED = 2026
