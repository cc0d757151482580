import streamlit as st
import time
import pandas as pd
from streamlit import runtime
from streamlit.runtime.scriptrunner import get_script_run_ctx

from config import Config
from storage.keyed_store import get_store, ATM_FEEDBACK_KEY, REWARD_POINTS_KEY
from storage.sync import SyncRegistry
from storage.models import ATMFeedback, ATMStatus, TicketPriority, TicketStatus, AppointmentStatus, parse_records
from storage.attachments import AttachmentError, encode_attachment, try_decode_attachment
from storage.setup import reset_db
from auth.authentication import AuthSystem
from tickets.manager import TicketManager, REQUEST_TYPES
from appointments.manager import AppointmentManager, SERVICE_CATEGORIES, BRANCHES, TIME_SLOTS, available_dates
from appointments.resources import ResourceAssignment, FavoriteStore
from atm.locator import ATMFeedbackManager, cities, search_atms
from atm.fleet import ATMFleetManager, KIOSK_TYPES
from rewards.ledger import Awarded, milestones_for, next_milestone, progress_to_next
from analytics.engine import AnalyticsEngine
from ui.components import UIComponents


def _debug(message):
    if st.session_state.get('debug', False):
        st.info(f"🔧 Debug: {message}")


_live_syncs = SyncRegistry()


def _session_id():
    ctx = get_script_run_ctx()
    return ctx.session_id if ctx is not None else None


def _session_alive(session_id):
    return runtime.exists() and runtime.get_instance().is_active_session(session_id)


def live_value(key, default=list):
    """Latest value of a persisted key, kept current by this session's PollingSync"""
    _live_syncs.sweep(_session_alive)
    return _live_syncs.get(_session_id(), key, get_store(), default).value


def live_sync_keys():
    return _live_syncs.keys(_session_id())


def stop_live_syncs():
    stopped = _live_syncs.stop_owner(_session_id())
    _debug(f"Stopped {stopped} live sync(s)")


def _encode_upload(upload, max_bytes, image_only=False, with_id=True):
    """Encode an UploadedFile, showing a blocking error when it is rejected"""
    try:
        return encode_attachment(
            upload.name, upload.type, upload.getvalue(), max_bytes,
            image_only=image_only, with_id=with_id
        )
    except AttachmentError as e:
        st.error(f"❌ {e}")
        return None


def _attachment_download(attachment, label, key):
    """Download button for a stored attachment; returns its bytes, or None when unreadable"""
    data = try_decode_attachment(attachment)
    if data is None:
        st.warning(f"⚠️ Attachment {attachment.name} could not be read")
        return None
    st.download_button(label, data=data, file_name=attachment.name, mime=attachment.type, key=key)
    return data


def _current_customer():
    user = AuthSystem(get_store()).current_user() or {}
    return (
        user.get('national_number', 'Unknown'),
        user.get('phone_number', ''),
        user.get('iban', ''),
    )


# =======================
# LOGIN & NAVIGATION
# =======================

def show_login_section():
    """Customer login: national number, phone number and IBAN"""
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown('<div class="main-header">🏦 Bank Customer Portal</div>', unsafe_allow_html=True)
        st.subheader("🔐 Please Login")

        with st.form("login_form", clear_on_submit=True):
            national_number = st.text_input("🪪 National Number", placeholder="Enter your national number")
            phone_number = st.text_input("📱 Phone Number", placeholder="Enter your phone number")
            iban = st.text_input("🏦 IBAN", placeholder="Enter your IBAN")

            login_btn = st.form_submit_button("✅ Login", width='stretch')

            if login_btn:
                if not national_number or not phone_number or not iban:
                    st.error("❌ Please fill in national number, phone number and IBAN")
                else:
                    AuthSystem(get_store()).login(national_number, phone_number, iban)
                    st.success("✅ Welcome!")
                    time.sleep(1)
                    st.rerun()


def show_main_application():
    """Main application after login"""
    auth = AuthSystem(get_store())
    national_number, _, _ = _current_customer()

    st.sidebar.markdown(f"""
        <div class="user-info-card">
            <h4>👤 Customer</h4>
            <p><strong>National Number:</strong> {national_number}</p>
        </div>
    """, unsafe_allow_html=True)

    language = st.sidebar.selectbox(
        "🌐 Language", ["en", "ar"],
        index=["en", "ar"].index(auth.get_language())
    )
    if language != auth.get_language():
        auth.set_language(language)

    st.sidebar.title("🧭 Navigation")
    area = st.sidebar.radio("Area", ["🏦 Customer Portal", "🛠️ Admin Dashboard"])

    if area == "🏦 Customer Portal":
        page = st.sidebar.radio("Go to", ["🎫 Tickets", "📅 Appointments", "🏧 ATM Locator", "🎁 Rewards"])
    else:
        page = "admin"

    if st.sidebar.button("🚪 Logout", width='stretch'):
        stop_live_syncs()
        auth.logout()
        st.rerun()

    if page == "🎫 Tickets":
        show_tickets_page()
    elif page == "📅 Appointments":
        show_appointments_page()
    elif page == "🏧 ATM Locator":
        show_atm_locator()
    elif page == "🎁 Rewards":
        show_rewards_page()
    else:
        show_admin_dashboard()


# =======================
# CUSTOMER: TICKETS
# =======================

def show_tickets_page():
    st.markdown('<div class="main-header">🎫 Digital Ticketing</div>', unsafe_allow_html=True)
    tab1, tab2 = st.tabs(["➕ Create Ticket", "📋 My Tickets"])

    with tab1:
        show_create_ticket()
    with tab2:
        show_my_tickets()


def show_create_ticket():
    manager = TicketManager(get_store())

    type_key = st.selectbox(
        "Request Type",
        list(REQUEST_TYPES.keys()),
        format_func=lambda key: REQUEST_TYPES[key]["label"],
        key="ticket_request_type"
    )
    request_type = REQUEST_TYPES[type_key]
    service = st.selectbox("Request", request_type["requests"], key="ticket_service")
    description = st.text_area(
        "Description",
        placeholder="Provide additional details about your request...",
        key="ticket_description"
    )

    st.caption("Suggested documents: " + ", ".join(request_type["documents"]))
    uploads = st.file_uploader("📎 Attachments", accept_multiple_files=True, key="ticket_uploads")

    attachments = []
    for upload in uploads or []:
        attachment = _encode_upload(upload, Config.TICKET_ATTACHMENT_MAX_BYTES)
        if attachment is None:
            return
        attachments.append(attachment)

    if st.button("📨 Submit Ticket", type="primary", disabled=not description.strip()):
        national_number, phone, iban = _current_customer()
        ticket = manager.submit_ticket(
            national_number, phone, iban,
            service, request_type["label"], description,
            attachments=attachments or None
        )
        st.success(f"✅ Your ticket #{ticket.id} has been submitted and is being reviewed")
        _debug(f"Stored ticket {ticket.id} with {len(attachments)} attachment(s)")


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_my_tickets():
    national_number, _, _ = _current_customer()
    query = st.text_input("🔍 Search tickets by ID, category, or type", key="my_ticket_search")
    tickets = TicketManager(get_store()).search_customer_tickets(national_number, query)

    if not tickets:
        st.info("📭 No tickets found.")
        return

    for ticket in sorted(tickets, key=lambda t: t.created_at, reverse=True):
        with st.container(border=True):
            st.markdown(f"**#{ticket.id}**: {ticket.service} ({ticket.service_category})")
            st.markdown(
                f"{UIComponents.status_badge(ticket.status.value)} "
                f"{UIComponents.priority_badge(ticket.priority.value)}",
                unsafe_allow_html=True
            )
            st.write(ticket.description)
            if ticket.rejection_reason:
                st.error(f"Rejection reason: {ticket.rejection_reason}")
            for reply in ticket.replies:
                st.markdown(f"💬 **{reply.sent_by}** ({reply.sent_at[:16]}): {reply.message}")
            if ticket.rewarded:
                st.caption(f"🎁 +{Config.REWARD_POINTS_PER_ACCEPT} points earned")


# =======================
# CUSTOMER: APPOINTMENTS
# =======================

def show_appointments_page():
    st.markdown('<div class="main-header">📅 Appointments</div>', unsafe_allow_html=True)
    tab1, tab2, tab3 = st.tabs(["🗓️ Book", "⭐ Favorites", "📋 My Requests"])

    with tab1:
        show_appointment_booking()
    with tab2:
        show_favorites()
    with tab3:
        show_my_appointments()


def show_appointment_booking():
    store = get_store()
    resources = ResourceAssignment(store)
    favorites = FavoriteStore(store)

    category_key = st.selectbox(
        "Service Category",
        list(SERVICE_CATEGORIES.keys()),
        format_func=lambda key: SERVICE_CATEGORIES[key]["label"],
        key="apt_category"
    )
    service = st.selectbox("Service", SERVICE_CATEGORIES[category_key]["services"], key="apt_service")

    options = resources.resources_for(service)
    if not options:
        st.warning("⚠️ No department or person is currently available for this service.")
        return

    resource = st.radio(
        "Department / Person",
        options,
        format_func=lambda r: f"{'🏢' if r.type.value == 'department' else '👤'} {r.name} · {r.schedule}",
        key="apt_resource"
    )
    star = "★ Remove from favorites" if favorites.is_favorite(resource.id) else "☆ Add to favorites"
    if st.button(star, key="apt_star"):
        favorites.toggle(resource)
        st.rerun()

    branch = st.selectbox(
        "Branch", [b["id"] for b in BRANCHES],
        format_func=lambda bid: next(b["name"] for b in BRANCHES if b["id"] == bid),
        key="apt_branch"
    )
    day = st.selectbox(
        "Date", available_dates(30),
        format_func=lambda d: d.strftime("%A, %d %B %Y"),
        key="apt_date"
    )
    time_slot = st.selectbox("Time", TIME_SLOTS, key="apt_time")
    title = st.text_input("Title", value=service, key="apt_title")
    description = st.text_area("Description", key="apt_description")
    upload = st.file_uploader("📎 Attachment (optional)", key="apt_upload")

    attachment = None
    if upload is not None:
        attachment = _encode_upload(upload, Config.TICKET_ATTACHMENT_MAX_BYTES, with_id=False)
        if attachment is None:
            return

    ready = bool(title.strip() and description.strip())
    if st.button("✅ Confirm Appointment", type="primary", disabled=not ready):
        national_number, phone, iban = _current_customer()
        try:
            request = AppointmentManager(store).submit_request(
                national_number, phone, iban, resource, title, description,
                attachment=attachment, branch=branch, day=day, time_slot=time_slot
            )
        except ValueError as e:
            st.error(f"❌ {e}")
            return
        st.success(f"✅ Appointment request {request.id} sent to {request.administrator_label}")


def show_favorites():
    favorites = FavoriteStore(get_store())
    items = favorites.list()

    if not items:
        st.info("No favorite departments or people yet. Click the star on any department or person to add them.")
        return

    for favorite in items:
        col1, col2 = st.columns([5, 1])
        with col1:
            icon = "🏢 Department" if favorite.type.value == "department" else "👤 Person"
            st.markdown(f"**{favorite.name}** · {icon}  \n{favorite.schedule}")
        with col2:
            if st.button("✖", key=f"unfav_{favorite.id}"):
                favorites.remove(favorite.id)
                st.rerun()


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_my_appointments():
    national_number, _, _ = _current_customer()
    requests = AppointmentManager(get_store()).requests_for_customer(national_number)

    if not requests:
        st.info("📭 No appointment requests yet.")
        return

    df = pd.DataFrame([{
        "ID": r.id,
        "Title": r.title,
        "With": r.administrator_label,
        "Branch": r.branch or "",
        "Date": r.date or "",
        "Time": r.time_slot or "",
        "Status": UIComponents.status_label(r.status.value),
    } for r in requests])
    st.dataframe(df, hide_index=True, width='stretch')


# =======================
# CUSTOMER: ATM LOCATOR
# =======================

def show_atm_locator():
    st.markdown('<div class="main-header">🏧 ATM Locator</div>', unsafe_allow_html=True)

    col1, col2 = st.columns([3, 1])
    with col1:
        query = st.text_input("🔍 Search by name or address", key="atm_search")
    with col2:
        city = st.selectbox("City", ["all"] + cities(), key="atm_city")

    atms = search_atms(query, city)
    if not atms:
        st.info("No ATMs match your search.")
        return

    st.map(pd.DataFrame([{"lat": a.lat, "lon": a.lng} for a in atms]))

    for atm in atms:
        with st.expander(f"{atm.name} · {UIComponents.status_label(atm.status)}"):
            st.write(f"📍 {atm.address} ({atm.city})")
            st.write(f"💵 Cash available: {'Yes' if atm.cash_available else 'No'} · "
                     f"Max withdrawal: {atm.max_withdrawal} · Congestion: {atm.congestion}")
            st.markdown(f"[Open in Google Maps]({atm.map_url})")
            show_atm_feedback_form(atm)


def show_atm_feedback_form(atm):
    with st.form(f"atm_feedback_{atm.id}", clear_on_submit=True):
        description = st.text_area("Report a problem or leave feedback", key=f"atm_desc_{atm.id}")
        image = st.file_uploader("📷 Photo (optional)", type=["png", "jpg", "jpeg", "gif", "webp"],
                                 key=f"atm_img_{atm.id}")
        submitted = st.form_submit_button("📨 Submit Feedback")

        if submitted:
            if not description.strip():
                st.error("❌ Please describe the issue")
                return
            attachment = None
            if image is not None:
                attachment = _encode_upload(image, Config.ATM_IMAGE_MAX_BYTES, image_only=True, with_id=False)
                if attachment is None:
                    return
            national_number, _, _ = _current_customer()
            ATMFeedbackManager(get_store()).submit_feedback(atm.id, national_number, description, attachment)
            st.success("✅ Thank you! Your feedback has been submitted.")


# =======================
# CUSTOMER: REWARDS
# =======================

@st.fragment(run_every=Config.POLL_INTERVAL)
def show_rewards_page():
    st.markdown('<div class="main-header">🎁 Rewards & Points</div>', unsafe_allow_html=True)
    national_number, _, _ = _current_customer()
    points = live_value(REWARD_POINTS_KEY, dict).get(national_number, 0)
    if not isinstance(points, (int, float)):
        points = 0

    col1, col2 = st.columns(2)
    with col1:
        UIComponents.styled_metric(points, "Total Points")
        st.caption(f"Points per accepted ticket: +{Config.REWARD_POINTS_PER_ACCEPT}")
    with col2:
        upcoming = next_milestone(points)
        if upcoming:
            st.plotly_chart(UIComponents.create_progress_gauge(points, upcoming.threshold), width='stretch')
        else:
            st.success("🏆 All milestones unlocked!")
        st.progress(int(progress_to_next(points)))

    st.subheader("🏅 Milestones")
    for milestone in milestones_for(points):
        icon = "✅" if milestone.unlocked else "🔒"
        st.markdown(f"{icon} **{milestone.threshold} points**: {milestone.reward_label}")


# =======================
# ADMIN
# =======================

def show_admin_dashboard():
    st.markdown('<div class="main-header">🛠️ ADMIN DASHBOARD</div>', unsafe_allow_html=True)
    store = get_store()

    show_admin_metrics()

    tab1, tab2, tab3, tab4, tab5, tab6 = st.tabs([
        "🎫 Tickets", "📅 Appointments", "🏢 Resources", "🏧 ATMs", "🎁 Rewards", "⚙️ Settings"
    ])
    with tab1:
        show_ticket_management()
    with tab2:
        show_appointment_management()
    with tab3:
        show_resource_management()
    with tab4:
        show_atm_management()
    with tab5:
        show_reward_statistics()
    with tab6:
        st.warning("⚠️ These actions affect all stored data. Proceed with caution.")
        confirm = st.checkbox("I understand that this removes every ticket, appointment and reward")
        if st.button("🗑️ Reset Storage", disabled=not confirm):
            removed = reset_db(store)
            stop_live_syncs()
            st.success(f"⚠️ Storage has been reset ({removed} keys removed)")


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_admin_metrics():
    metrics = AnalyticsEngine.get_dashboard_metrics(get_store())

    kpis = [
        ("📊", metrics["total_tickets"], "Total Tickets"),
        ("🟡", metrics["open_tickets"], "Open Tickets"),
        ("✅", metrics["completed_tickets"], "Completed"),
        ("📅", metrics["pending_appointments"], "Pending Appointments"),
        ("🏧", metrics["atm_feedback_count"], "ATM Feedback"),
    ]
    cols = st.columns(len(kpis))
    for col, (icon, value, label) in zip(cols, kpis):
        with col:
            UIComponents.styled_metric(f"{icon} {value}", label)

    left, right = st.columns(2)
    with left:
        chart = UIComponents.create_status_chart(metrics["status_distribution"])
        if chart:
            st.plotly_chart(chart, width='stretch')
    with right:
        chart = UIComponents.create_trend_chart(metrics["daily_trends"])
        if chart:
            st.plotly_chart(chart, width='stretch')


def show_ticket_management():
    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        query = st.text_input("🔍 Search by ticket ID or customer", key="admin_ticket_search")
    with col2:
        status = st.selectbox("Status", ["all"] + [s.value for s in TicketStatus], key="admin_ticket_status")
    with col3:
        priority = st.selectbox("Priority", ["all"] + [p.value for p in TicketPriority], key="admin_ticket_priority")

    show_ticket_list(query, status, priority)


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_ticket_list(query, status, priority):
    manager = TicketManager(get_store())
    tickets = manager.filter_tickets(query, status, priority)

    if not tickets:
        st.info("📭 No tickets found in the system.")
        return

    for ticket in sorted(tickets, key=lambda t: t.created_at, reverse=True):
        with st.expander(f"#{ticket.id} · {ticket.service} · {ticket.customer}"):
            st.markdown(
                f"{UIComponents.status_badge(ticket.status.value)} "
                f"{UIComponents.priority_badge(ticket.priority.value)}",
                unsafe_allow_html=True
            )
            st.write(f"**Customer:** {ticket.customer} · 📱 {ticket.customer_phone} · 🏦 {ticket.customer_iban}")
            st.write(f"**Category:** {ticket.service_category}")
            st.write(ticket.description)
            if ticket.assigned_to:
                st.write(f"**Assigned to:** {ticket.assigned_to} {ticket.assigned_email or ''}")

            for i, attachment in enumerate(ticket.attachments or []):
                _attachment_download(attachment, f"⬇️ {attachment.name}", f"dl_{ticket.id}_{i}")

            show_ticket_actions(manager, ticket)


def show_ticket_actions(manager, ticket):
    with st.form(f"status_{ticket.id}"):
        statuses = [s.value for s in TicketStatus]
        new_status = st.selectbox("Status", statuses, index=statuses.index(ticket.status.value))
        priorities = [p.value for p in TicketPriority]
        new_priority = st.selectbox("Priority", priorities, index=priorities.index(ticket.priority.value))
        reason = st.text_input("Rejection reason", value=ticket.rejection_reason or "")
        if st.form_submit_button("💾 Update"):
            try:
                manager.update_status(ticket.id, new_status, reason)
                manager.set_priority(ticket.id, new_priority)
                st.success("✅ Ticket updated")
            except ValueError as e:
                st.error(f"❌ {e}")

    with st.form(f"assign_{ticket.id}"):
        assignee = st.text_input("Assign to", value=ticket.assigned_to or "")
        email = st.text_input("Assignee email", value=ticket.assigned_email or "")
        if st.form_submit_button("👤 Assign"):
            try:
                manager.assign(ticket.id, assignee, email)
                st.success(f"✅ Ticket #{ticket.id} assigned to {assignee}")
            except ValueError as e:
                st.error(f"❌ {e}")

    with st.form(f"reply_{ticket.id}", clear_on_submit=True):
        message = st.text_area("Reply to customer")
        if st.form_submit_button("💬 Send Reply"):
            try:
                manager.add_reply(ticket.id, message, "admin")
                st.success("✅ Reply sent")
            except ValueError as e:
                st.error(f"❌ {e}")

    if st.button(
        "🎁 Accepted" if ticket.rewarded else f"🎁 Accept (+{Config.REWARD_POINTS_PER_ACCEPT} points)",
        key=f"accept_{ticket.id}",
        disabled=ticket.rewarded
    ):
        result = manager.accept(ticket.id)
        if isinstance(result, Awarded):
            st.success(f"✅ {result.user_id} now has {result.balance} points")
        else:
            st.info("Points for this ticket were already awarded")


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_appointment_management():
    manager = AppointmentManager(get_store())

    col1, col2 = st.columns(2)
    with col1:
        status = st.selectbox("Status", ["all"] + [s.value for s in AppointmentStatus], key="admin_apt_status")
    with col2:
        branch = st.selectbox("Branch", ["all"] + [b["id"] for b in BRANCHES], key="admin_apt_branch")

    requests = manager.filter_requests(status, branch)
    if not requests:
        st.info("📭 No appointment requests.")
        return

    for request in sorted(requests, key=lambda r: r.created_at, reverse=True):
        with st.expander(f"{request.id} · {request.title} · {request.customer}"):
            st.markdown(UIComponents.status_badge(request.status.value), unsafe_allow_html=True)
            st.write(f"**With:** {request.administrator_label} · **Branch:** {request.branch or '-'} · "
                     f"**When:** {request.date or '-'} {request.time_slot or ''}")
            st.write(request.description)
            if request.attachment:
                _attachment_download(request.attachment, f"⬇️ {request.attachment.name}", f"dl_{request.id}")

            col1, col2, col3 = st.columns(3)
            with col1:
                if request.status == AppointmentStatus.PENDING and st.button("✔️ Confirm", key=f"confirm_{request.id}"):
                    manager.confirm(request.id)
                    st.rerun()
                if request.status == AppointmentStatus.CONFIRMED and st.button("📍 Check In", key=f"checkin_{request.id}"):
                    manager.check_in(request.id)
                    st.rerun()
            with col2:
                assignee = st.text_input("Assign to", value=request.assigned_to or "", key=f"apt_assignee_{request.id}")
                if st.button("👤 Assign", key=f"apt_assign_{request.id}", disabled=not assignee.strip()):
                    manager.assign(request.id, assignee)
                    st.rerun()
            with col3:
                if st.button("🎁 Accept", key=f"apt_accept_{request.id}", disabled=request.rewarded):
                    result = manager.accept(request.id)
                    if isinstance(result, Awarded):
                        st.success(f"✅ {result.user_id} now has {result.balance} points")


def show_resource_management():
    resources = ResourceAssignment(get_store())

    with st.form("add_resource", clear_on_submit=True):
        st.write("**Add Department or Person**")
        name = st.text_input("Name")
        kind = st.selectbox("Type", ["department", "person"])
        schedule = st.text_input("Schedule", placeholder="Sun-Thu 09:00 AM - 03:00 PM")
        if st.form_submit_button("➕ Add"):
            if not name.strip():
                st.error("❌ Please enter a name")
            else:
                resources.add_resource(name, kind, schedule)
                st.success(f"✅ {name} added")

    table = resources.list_resources()
    if not table:
        st.info("No resources yet; services use the built-in defaults.")
        return

    st.subheader("📋 Resources")
    for resource in table:
        col1, col2 = st.columns([5, 1])
        with col1:
            st.markdown(f"**{resource.name}** ({resource.type.value}) · {resource.schedule}")
        with col2:
            if st.button("🗑️", key=f"del_res_{resource.id}"):
                resources.delete_resource(resource.id)
                st.rerun()

    st.subheader("🔗 Service Assignments")
    by_id = {r.id: r for r in table}
    service = st.selectbox(
        "Service",
        [svc for category in SERVICE_CATEGORIES.values() for svc in category["services"]],
        key="map_service"
    )
    assigned = [rid for rid in resources.mapping().get(service, []) if rid in by_id]
    for rid in assigned:
        col1, col2 = st.columns([5, 1])
        with col1:
            st.write(f"• {by_id[rid].name}")
        with col2:
            if st.button("✖", key=f"unmap_{service}_{rid}"):
                resources.unassign(service, rid)
                st.rerun()

    candidates = [r for r in table if r.id not in assigned]
    if candidates:
        choice = st.selectbox("Add resource to service", candidates, format_func=lambda r: r.name, key="map_choice")
        if st.button("🔗 Assign", key="map_assign"):
            resources.assign(service, choice.id)
            st.rerun()


def show_atm_management():
    show_atm_fleet()
    st.divider()
    st.subheader("💬 Customer Feedback")
    show_atm_feedback_management()


def show_atm_fleet():
    fleet = ATMFleetManager(get_store())
    feedback = ATMFeedbackManager(get_store())

    status = st.selectbox(
        "Status", ["all"] + [s.value for s in ATMStatus],
        format_func=lambda s: "All" if s == "all" else UIComponents.status_label(s),
        key="fleet_status"
    )
    machines = fleet.list_machines(status)

    if machines:
        df = pd.DataFrame([{
            "Name": m.name,
            "Type": m.kiosk_type or m.machine_type.value,
            "Location": m.location,
            "Status": UIComponents.status_label(m.status.value),
            "Cash %": m.cash_level,
            "Last Maintenance": m.last_maintenance,
            "Next Maintenance": m.next_maintenance,
            "Transactions Today": m.transactions_today,
            "Issues": ", ".join(m.issues),
            "Feedback": len(feedback.feedback_for_atm(m.id)),
        } for m in machines])
        st.dataframe(df, hide_index=True, width='stretch')
    else:
        st.info("No ATMs match this status.")

    all_machines = fleet.list_machines()
    by_id = {m.id: m for m in all_machines}
    col1, col2, col3 = st.columns(3)

    with col1:
        with st.expander("➕ Add ATM / Kiosk"):
            with st.form("add_atm", clear_on_submit=True):
                name = st.text_input("Name")
                location = st.text_input("Location")
                cash_level = st.number_input("Cash level (%)", min_value=0, max_value=100, value=100, step=1)
                machine_type = st.selectbox("Machine type", ["ATM", "Kiosk"])
                kiosk_type = st.selectbox("Kiosk type", [""] + list(KIOSK_TYPES))
                if st.form_submit_button("➕ Add"):
                    try:
                        machine = fleet.add_machine(name, location, int(cash_level), machine_type, kiosk_type or None)
                        st.success(f"✅ {machine.name} added")
                    except ValueError as e:
                        st.error(f"❌ {e}")

    with col2:
        with st.expander("💵 Update Cash Levels"):
            with st.form("cash_levels"):
                levels = {
                    m.id: st.number_input(m.name, min_value=0, max_value=100, value=m.cash_level, step=1,
                                          key=f"cash_{m.id}")
                    for m in all_machines
                }
                if st.form_submit_button("💾 Save"):
                    changed = {i: int(v) for i, v in levels.items() if int(v) != by_id[i].cash_level}
                    try:
                        fleet.update_cash_levels(changed)
                        st.success(f"✅ Updated {len(changed)} cash level(s)")
                    except (ValueError, LookupError) as e:
                        st.error(f"❌ {e}")

    with col3:
        with st.expander("🔧 Schedule Maintenance"):
            with st.form("schedule_maintenance", clear_on_submit=True):
                selected = st.multiselect(
                    "ATMs", list(by_id), format_func=lambda i: by_id[i].name
                )
                day = st.date_input("Maintenance date", value=None)
                if st.form_submit_button("📅 Schedule"):
                    try:
                        scheduled = fleet.schedule_maintenance(selected, day)
                        st.success(f"✅ {len(scheduled)} ATM(s) moved to maintenance")
                    except (ValueError, LookupError) as e:
                        st.error(f"❌ {e}")


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_atm_feedback_management():
    feedback = parse_records(live_value(ATM_FEEDBACK_KEY), ATMFeedback)
    if not feedback:
        st.info("📭 No ATM feedback yet.")
        return

    df = pd.DataFrame([{"ATM": f.atm_name, "Customer": f.customer, "Created": f.created_at[:16]} for f in feedback])
    st.dataframe(df, hide_index=True, width='stretch')

    for item in sorted(feedback, key=lambda f: f.created_at, reverse=True):
        with st.expander(f"{item.atm_name} · {item.customer} · {item.created_at[:16]}"):
            st.write(item.description)
            if item.image_attachment:
                data = _attachment_download(item.image_attachment, "⬇️ Download image", f"dl_fb_{item.id}")
                if data is not None:
                    st.image(data, caption=item.image_attachment.name)


def show_reward_statistics():
    query = st.text_input("🔍 Search by national number", key="reward_search")
    show_reward_table(query)


@st.fragment(run_every=Config.POLL_INTERVAL)
def show_reward_table(query):
    stats = AnalyticsEngine.get_reward_statistics(get_store(), query)

    col1, col2, col3 = st.columns(3)
    with col1:
        UIComponents.styled_metric(f"{stats['total_points']:,}", "Total Reward Points")
    with col2:
        UIComponents.styled_metric(stats['total_users'], "Users with Points")
    with col3:
        UIComponents.styled_metric(stats['average_points'], "Average Points per User")

    if not stats['users']:
        st.info("No users with reward points yet.")
        return

    chart = UIComponents.create_points_chart(stats['users'])
    if chart:
        st.plotly_chart(chart, width='stretch')

    df = pd.DataFrame(stats['users'])
    df['badge'] = df['badge'].fillna("")
    df.columns = ["National Number", "Points", "Milestone"]
    st.dataframe(df, hide_index=True, width='stretch')
