from .ccsconfig import (
    BrowserConfig as BrowserConfig,
)
from .ccsconfig import (
    Config as Config,
)
from .ccsconfig import (
    ExtractorConfig as ExtractorConfig,
)
from .ccsconfig import (
    ServerConfig as ServerConfig,
)
from .ccsconfig import (
    coerce_nested as coerce_nested,
)
from .ccsconfig import (
    config_from_env as config_from_env,
)
from .ccsconfig import (
    load_config as load_config,
)
from .ccscraper import (
    ScrapeResult as ScrapeResult,
)
from .ccscraper import (
    TopProductsScraper as TopProductsScraper,
)
from .ccscraper import (
    scrape_top_products as scrape_top_products,
)
from .ccsextractor import (
    ExtractionResult as ExtractionResult,
)
from .ccsextractor import (
    TableNotFoundError as TableNotFoundError,
)
from .ccsextractor import (
    build_record as build_record,
)
from .ccsextractor import (
    extract_table as extract_table,
)
from .ccsheaders import (
    HEADER_RULES as HEADER_RULES,
)
from .ccsheaders import (
    HeaderRule as HeaderRule,
)
from .ccsheaders import (
    header_to_key as header_to_key,
)
from .ccsstrategy import (
    first_success as first_success,
)
from .ccstext import (
    clean_text as clean_text,
)
