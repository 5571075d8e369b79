"""
Streamlit UI for the Series Analyzer.
Calls the local FastAPI server at http://localhost:8000 for statistics and reports,
or runs locally by loading the data folder itself like the API does.

Run API (optional):   uvicorn api:app --reload
Run UI:                streamlit run streamlit_app.py
"""

# HTTP client to call the API when running in API mode
import requests  # make web requests to the FastAPI server
# Streamlit framework to build a simple interactive UI
import streamlit as st  # UI primitives
# Typing to make function signatures clearer
from typing import Optional  # indicates values can be None

# Local imports for fallback/local mode (when the API isn't used)
from series_analyzer.catalog import SeriesCatalog  # in-memory catalog
from series_analyzer.config import data_dir, settings  # configured data folder / API URL
from series_analyzer.data_loader import SeriesLoader  # parallel folder loader
from series_analyzer.models import ReportRequest
from series_analyzer.report_service import ReportService  # local report rendering
from series_analyzer.statistics import SUPPORTED_ATTRIBUTES, count_by_attribute, statistics_to_dict

# Default URL where the FastAPI server is expected to run locally
DEFAULT_API_URL = settings.get("api_url", "http://localhost:8000")  # default API base URL

# Configure Streamlit page (title and layout width)
st.set_page_config(page_title="Series Analyzer", layout="wide")  # wide layout

# Main page title
st.title("📺 Series Analyzer")  # friendly header

# Cache the local catalog so the folder is only parsed once per session
@st.cache_resource(show_spinner=True)
def init_local_catalog() -> Optional[SeriesCatalog]:
	"""Load the configured data folder into a local catalog."""
	try:
		loader = SeriesLoader(workers=int(settings.get("loader_workers", 4)))  # create loader
		return SeriesCatalog(loader.load_from_folder(data_dir()))  # read dataset
	except Exception as e:
		# Show an error in the UI so users know local mode failed
		st.error(f"Failed to load local data: {e}")
		return None  # signal failure

# Sidebar contains configuration controls
with st.sidebar:
	st.header("Settings")  # section label
	api_url = st.text_input("API URL", DEFAULT_API_URL)  # where the API lives
	use_local = st.toggle("Use local data", value=False, help="If enabled or the API is unreachable, the app reads the data folder directly.")

# If not forcing local, check quickly whether the API is reachable
api_available = False  # default assumption
if not use_local:
	try:
		h = requests.get(f"{api_url}/health", timeout=3)  # ping API health endpoint
		api_available = h.ok  # True if server responded 200 OK
	except requests.RequestException:
		api_available = False  # health check failed
		st.sidebar.info("API not reachable; using local data.")  # inform user

local_catalog: Optional[SeriesCatalog] = None  # placeholder
if use_local or not api_available:
	local_catalog = init_local_catalog()

# --- Statistics ---
st.header("Statistics")
attribute = st.selectbox("Group by", SUPPORTED_ATTRIBUTES, index=1)  # default: genre

try:
	if local_catalog is not None:
		stats = statistics_to_dict(count_by_attribute(local_catalog.all(), attribute), attribute)
	else:
		resp = requests.get(f"{api_url}/api/v1/statistics/{attribute}", timeout=30)
		resp.raise_for_status()  # raise error if server responded with an error code
		stats = resp.json()
	items = stats.get("items", [])
	st.caption(f"{len(items)} distinct values")
	if items:
		st.bar_chart(items, x="value", y="count")
		st.dataframe(items, use_container_width=True)
except requests.RequestException as e:  # network/API errors
	st.error(f"API request failed: {e}")

st.divider()  # visual separator

# --- Reports ---
st.header("Report")
c1, c2, c3, c4 = st.columns(4)
with c1:
	min_rating = st.number_input("Min rating", min_value=0.0, max_value=10.0, value=0.0, step=0.1)
with c2:
	year = st.number_input("Year (0 = any)", min_value=0, max_value=2100, value=0, step=1)
with c3:
	genre = st.text_input("Genre contains")
with c4:
	fmt = st.selectbox("Format", ["csv", "xlsx", "json"])

if st.button("Generate report", type="primary"):
	with st.spinner("Rendering..."):
		try:
			if local_catalog is not None:
				result = ReportService(local_catalog).generate(ReportRequest(
					min_rating=min_rating or None,
					year=int(year) or None,
					genre=genre or None,
					format=fmt,
				))
				data, filename, mime = result.report.data, result.report.filename, result.report.content_type
			else:
				body = {"minRating": min_rating or None, "year": int(year) or None, "genre": genre or None, "format": fmt}
				resp = requests.post(f"{api_url}/api/v1/series/_report", json=body, timeout=60)
				resp.raise_for_status()
				mime = resp.headers.get("content-type", "application/octet-stream")
				disposition = resp.headers.get("content-disposition", "")
				filename = disposition.split("filename=")[-1].strip('"') or f"series-report.{fmt}"
				data = resp.content
			st.success(f"Report ready: {filename} ({len(data)} bytes)")
			st.download_button("Download", data=data, file_name=filename, mime=mime)
		except requests.RequestException as e:
			st.error(f"API request failed: {e}")
		except Exception as e:  # rendering errors in local mode
			st.error(f"Report failed: {e}")

# Show a footer indicator of current mode
st.sidebar.markdown("---")  # separator
if local_catalog is not None:
	st.sidebar.caption(f"Mode: Local data ({len(local_catalog)} series)")  # mode label
else:
	st.sidebar.caption("Mode: API client (ensure uvicorn api:app --reload is running)")  # mode label
