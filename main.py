import logging

import streamlit as st

from config import Config
from storage.keyed_store import get_store
from storage.setup import init_db
from auth.authentication import AuthSystem
from ui.pages import (
    show_login_section,
    show_main_application,
    live_sync_keys
)

PAGE_STYLE = """
.main-header { font-size: 2rem; font-weight: 700; color: #1f3b73; margin-bottom: 1rem; }
.user-info-card { background: #f0f4fa; padding: 0.75rem 1rem; border-radius: 10px; margin-bottom: 1rem; }
.badge { font-size: 0.85rem; margin-right: 0.5rem; }
"""


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )


# Initialize session state
def init_session_state():
    if "debug" not in st.session_state:
        st.session_state.debug = Config.DEBUG
    if "app_initialized" not in st.session_state:
        st.session_state.app_initialized = False


def main():
    # Page configuration
    st.set_page_config(
        page_title="Bank Customer Portal",
        page_icon="🏦",
        layout="wide",
        initial_sidebar_state="expanded"
    )
    st.markdown(f'<style>{PAGE_STYLE}</style>', unsafe_allow_html=True)

    init_session_state()

    store = get_store()

    # Initialize storage only once per session
    if not st.session_state.get('app_initialized', False):
        if not init_db(store):
            st.error("❌ Storage is not available. Check the storage settings in your .env file.")
            return
        st.session_state.app_initialized = True

    # Debug panel (only show if debug mode is enabled)
    if st.session_state.get('debug', False):
        with st.sidebar.expander("🔧 Debug Panel"):
            st.write("Storage keys:", store.keys())
            st.write("Live syncs:", live_sync_keys())
            if st.button("Clear Session"):
                for key in list(st.session_state.keys()):
                    del st.session_state[key]
                st.rerun()

    if not AuthSystem(store).is_authenticated():
        show_login_section()
        return

    show_main_application()


configure_logging()

if __name__ == "__main__":
    main()
