"""
Streamlit Frontend for TH Control

The condominium's residents and administrator use this every day to
record payments, follow expenses and leave suggestions.

DESIGN PRINCIPLES:
1. Every change shows up immediately, even without connection
2. The sync badge always tells whether the cloud copy is up to date
3. Form errors are shown next to the form, never as blocking dialogs
4. Residents only see their own house

Each browser session gets its own AppContext; only stateless
components are cached for the whole process.
"""

import asyncio
from datetime import date

import streamlit as st

from thcontrol.models import (
    ExpenseCategory,
    PaymentType,
    PullOutcome,
    STREETS,
    SuggestionStatus,
    SyncIndicator,
    UserRole,
)
from thcontrol.orchestrator import (
    AppContext,
    AuthenticationError,
    NotAuthorizedError,
    create_app_context,
    create_shared_components,
)
from thcontrol.reports import (
    ReportFilter,
    ReportPeriod,
    build_dashboard,
    build_report,
    visible_payments,
    visible_suggestions,
)
from thcontrol.validation import (
    EntryValidator,
    ValidationError,
    format_usd,
    try_convert_to_usd,
)


# Page configuration
st.set_page_config(
    page_title="TH Control",
    page_icon="🏘️",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro, context: AppContext = None):
    """
    Run an entry point on a fresh event loop.

    Scheduled pushes belong to that loop, so they are awaited before it
    closes.
    """
    async def _run():
        try:
            return await coro
        finally:
            if context is not None:
                await context.synchronizer.wait_for_pending()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_run())
    finally:
        loop.close()


@st.cache_resource
def get_components() -> dict:
    """Get or create the stateless components (cached per process)."""
    return create_shared_components()


def get_context() -> AppContext:
    """Get or create this browser session's context."""
    if "context" not in st.session_state:
        st.session_state.context = create_app_context(**get_components())
    return st.session_state.context


def render_sync_badge(context: AppContext):
    status = context.synchronizer.status
    if status == SyncIndicator.SYNCING:
        st.sidebar.info("🔄 Sincronizando")
    elif status == SyncIndicator.LOCAL_MODE:
        st.sidebar.warning("📴 Modo Local")
        if st.sidebar.button("Reintentar conexión"):
            run_async(context.session.refresh(), context)
            st.rerun()
    else:
        st.sidebar.success("☁️ Nube Activa")


def show_validation_error(error: ValidationError):
    st.error(EntryValidator().get_user_friendly_summary(error.result))


def main():
    """Main application entry point."""
    context = get_context()
    user = context.store.user

    if user is None:
        render_login_page(context)
        return

    st.sidebar.title("🏘️ TH Control")
    st.sidebar.markdown(f"**{user.username}**")
    if user.house_id:
        st.sidebar.caption(user.house_id)
    render_sync_badge(context)
    st.sidebar.markdown("---")

    pages = ["📊 Tablero", "💵 Pagos", "🛒 Gastos", "📈 Reportes", "💬 Sugerencias", "⚙️ Ajustes"]
    if not user.is_admin:
        pages.remove("🛒 Gastos")
    page = st.sidebar.radio("Ir a:", pages, index=0)

    if st.sidebar.button("Cerrar sesión"):
        run_async(context.session.logout(), context)
        st.rerun()

    if page == "📊 Tablero":
        render_dashboard_page(context)
    elif page == "💵 Pagos":
        render_payments_page(context)
    elif page == "🛒 Gastos":
        render_expenses_page(context)
    elif page == "📈 Reportes":
        render_reports_page(context)
    elif page == "💬 Sugerencias":
        render_suggestions_page(context)
    elif page == "⚙️ Ajustes":
        render_settings_page(context)


def render_login_page(context: AppContext):
    """Render the login form."""
    st.title("🏘️ TH Control")
    st.markdown("Administración del condominio")

    role = st.radio(
        "Ingresar como",
        options=[UserRole.RESIDENT, UserRole.ADMIN],
        format_func=lambda r: "Residente" if r == UserRole.RESIDENT else "Admin",
        horizontal=True,
    )

    with st.form("login"):
        username = st.text_input("Nombre")
        condo_key = st.text_input("Clave", type="password")

        house_id = None
        if role == UserRole.RESIDENT:
            street = st.selectbox("Calle", STREETS)
            houses = [h.id for h in context.store.houses if h.street == street]
            house_id = st.selectbox("Casa", houses)

        manual_id = st.text_input(
            "Código de sincronización (opcional)",
            help="Pega el código de otro equipo para ver los mismos datos",
        )
        submitted = st.form_submit_button("Entrar", type="primary")

    if not submitted:
        return

    try:
        outcome = run_async(
            context.session.login(
                role=role,
                username=username,
                condo_key=condo_key,
                house_id=house_id,
                manual_document_id=manual_id or None,
            ),
            context,
        )
    except AuthenticationError as e:
        st.error(str(e))
        return

    if outcome == PullOutcome.INVALID_CODE:
        st.session_state.login_notice = "El código ingresado no existe o ha expirado."
    st.rerun()


def render_dashboard_page(context: AppContext):
    """Render the general dashboard."""
    st.title("📊 Tablero General")

    notice = st.session_state.pop("login_notice", None)
    if notice:
        st.warning(notice)

    street = st.selectbox("Filtrar casas por calle", [None] + STREETS,
                          format_func=lambda s: "Todas" if s is None else s)
    summary = build_dashboard(context.store.snapshot(), street=street)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Ingresos Totales", f"${format_usd(summary.total_income)}")
    col2.metric("Gastos Totales", f"${format_usd(summary.total_expenses)}")
    col3.metric("Balance", f"${format_usd(summary.balance)}")
    col4.metric("Sugerencias pendientes", summary.pending_suggestions)

    st.markdown(f"### Casas ({summary.house_count})")
    st.dataframe(
        [
            {"Casa": h.name, "Calle": h.street, "Pagado": format_usd(h.paid)}
            for h in summary.houses
        ],
        width="stretch",
        hide_index=True,
    )


def render_payments_page(context: AppContext):
    """Render the payment form and the payment list."""
    user = context.store.user
    st.title("💵 Pagos")

    with st.form("payment", clear_on_submit=True):
        if user.is_admin:
            house_id = st.selectbox("Casa", [h.id for h in context.store.houses])
        else:
            house_id = user.house_id
            st.markdown(f"**Casa:** {house_id}")

        payment_type = st.selectbox(
            "Tipo de pago",
            list(PaymentType),
            format_func=lambda t: t.value,
        )
        reason = st.text_input("Motivo (solo cuota extraordinaria)")
        col1, col2 = st.columns(2)
        amount_bs = col1.text_input("Monto en Bs.")
        rate = col2.text_input("Tasa de cambio (Bs./USD)")
        st.caption(f"Total USD: {format_usd(try_convert_to_usd(amount_bs, rate))}")
        reference = st.text_input("Referencia bancaria (últimos 6 dígitos)", max_chars=6)
        receipt = st.text_input("Comprobante (enlace, opcional)")
        submitted = st.form_submit_button("Registrar pago", type="primary")

    if submitted:
        try:
            payment = run_async(
                context.ledger.record_payment(
                    house_id=house_id,
                    amount_bs=amount_bs,
                    exchange_rate=rate,
                    bank_reference=reference.strip(),
                    payment_type=payment_type,
                    extraordinary_reason=reason,
                    receipt_url=receipt.strip() or None,
                ),
                context,
            )
            st.success(f"Pago registrado: ${format_usd(payment.amount)}")
        except ValidationError as e:
            show_validation_error(e)
        except NotAuthorizedError as e:
            st.error(str(e))

    st.markdown("---")
    payments = visible_payments(context.store.snapshot(), user)
    if not payments:
        st.info("No hay pagos registrados.")
        return

    for payment in payments:
        col1, col2, col3 = st.columns([3, 2, 1])
        col1.markdown(
            f"**{payment.house_id}** · {payment.payment_type.value}"
            + (f" ({payment.extraordinary_reason})" if payment.extraordinary_reason else "")
        )
        col1.caption(
            f"{payment.date:%Y-%m-%d} · Ref {payment.bank_reference or '-'}"
        )
        col2.markdown(f"**${format_usd(payment.amount)}**")
        if payment.amount_bs is not None:
            col2.caption(f"Bs. {format_usd(payment.amount_bs)} @ {payment.exchange_rate}")
        if user.is_admin and col3.button("🗑️", key=f"delete-{payment.id}"):
            run_async(context.ledger.delete_payment(payment.id), context)
            st.rerun()


def render_expenses_page(context: AppContext):
    """Render the expense form and list (admin only)."""
    st.title("🛒 Gastos")

    with st.form("expense", clear_on_submit=True):
        concept = st.text_input("Concepto")
        category = st.selectbox("Categoría", list(ExpenseCategory), format_func=lambda c: c.value)
        col1, col2 = st.columns(2)
        amount_bs = col1.text_input("Monto en Bs.")
        rate = col2.text_input("Tasa de cambio (Bs./USD)")
        invoice = st.text_input("Factura (enlace, opcional)")
        submitted = st.form_submit_button("Registrar gasto", type="primary")

    if submitted:
        try:
            expense = run_async(
                context.ledger.record_expense(
                    concept=concept,
                    category=category,
                    amount_bs=amount_bs,
                    exchange_rate=rate,
                    invoice_url=invoice.strip() or None,
                ),
                context,
            )
            st.success(f"Gasto registrado: ${format_usd(expense.amount)}")
        except ValidationError as e:
            show_validation_error(e)
        except NotAuthorizedError as e:
            st.error(str(e))

    st.markdown("---")
    st.dataframe(
        [
            {
                "Fecha": f"{e.date:%Y-%m-%d}",
                "Concepto": e.concept,
                "Categoría": e.category.value,
                "USD": format_usd(e.amount),
            }
            for e in context.store.expenses
        ],
        width="stretch",
        hide_index=True,
    )


def render_reports_page(context: AppContext):
    """Render the financial reports."""
    st.title("📈 Reportes Financieros")

    col1, col2 = st.columns(2)
    period = col1.selectbox(
        "Tipo de reporte",
        list(ReportPeriod),
        format_func=lambda p: {"month": "Mensual", "year": "Anual", "street": "Por calle"}[p.value],
    )
    today = date.today()
    if period == ReportPeriod.MONTH:
        value = col2.text_input("Mes (AAAA-MM)", value=f"{today:%Y-%m}")
        kwargs = {"month": value}
    elif period == ReportPeriod.YEAR:
        value = col2.text_input("Año (AAAA)", value=f"{today:%Y}")
        kwargs = {"year": value}
    else:
        kwargs = {"street": col2.selectbox("Calle", STREETS)}

    try:
        report_filter = ReportFilter(period=period, **kwargs)
    except ValueError as e:
        st.error(f"Filtro inválido: {e}")
        return

    report = build_report(context.store.snapshot(), report_filter)

    col1, col2, col3 = st.columns(3)
    col1.metric("Ingresos", f"${format_usd(report.total_income)}")
    col2.metric("Gastos", f"${format_usd(report.total_expenses)}")
    col3.metric("Balance", f"${format_usd(report.balance)}")

    st.markdown("### Gastos por categoría")
    if report.expenses_by_category:
        st.bar_chart({k: float(v) for k, v in report.expenses_by_category.items()})
    else:
        st.info("Sin gastos en este período.")

    st.markdown("### Pagos por casa")
    st.dataframe(
        [
            {"Casa": h.name, "Calle": h.street, "Pagado": format_usd(h.paid)}
            for h in report.payments_by_house
        ],
        width="stretch",
        hide_index=True,
    )


def render_suggestions_page(context: AppContext):
    """Render the suggestion box."""
    user = context.store.user
    st.title("💬 Buzón de Sugerencias")

    with st.form("suggestion", clear_on_submit=True):
        message = st.text_area("Tu sugerencia")
        submitted = st.form_submit_button("Enviar", type="primary")

    if submitted:
        try:
            run_async(context.suggestions.submit_suggestion(message), context)
            st.success("¡Gracias! Tu sugerencia fue enviada.")
        except ValidationError as e:
            show_validation_error(e)

    st.markdown("---")
    labels = {
        SuggestionStatus.PENDING: "⏳ Pendiente",
        SuggestionStatus.REVIEWED: "👀 Revisada",
        SuggestionStatus.RESOLVED: "✅ Resuelta",
    }
    for suggestion in visible_suggestions(context.store.snapshot(), user):
        with st.container(border=True):
            author = "Administración" if suggestion.from_admin else suggestion.house_id
            st.markdown(f"**{author}** · {suggestion.date:%Y-%m-%d} · {labels[suggestion.status]}")
            st.write(suggestion.message)
            if user.is_admin:
                if suggestion.ip_address:
                    st.caption(f"IP: {suggestion.ip_address}")
                new_status = st.selectbox(
                    "Estado",
                    list(SuggestionStatus),
                    index=list(SuggestionStatus).index(suggestion.status),
                    format_func=lambda s: labels[s],
                    key=f"status-{suggestion.id}",
                )
                if new_status != suggestion.status:
                    run_async(
                        context.suggestions.update_suggestion_status(suggestion.id, new_status),
                        context,
                    )
                    st.rerun()


def render_settings_page(context: AppContext):
    """Render the sync settings page."""
    st.title("⚙️ Ajustes")

    st.markdown("### Código de sincronización")
    document_id = context.synchronizer.document_id
    if document_id:
        st.code(document_id, language=None)
        st.caption("Usa este código al iniciar sesión en otro equipo para ver los mismos datos.")
    else:
        st.warning("Sin conexión a la nube. Los datos se guardan solo en este equipo.")

    with st.form("manual-sync"):
        manual_id = st.text_input("Conectar con otro código")
        submitted = st.form_submit_button("Sincronizar ahora")
    if submitted:
        outcome = run_async(context.session.refresh(manual_id or None), context)
        if outcome == PullOutcome.INVALID_CODE:
            st.error("El código ingresado no existe o ha expirado.")
        elif outcome == PullOutcome.OFFLINE:
            st.warning("No se pudo conectar. Seguimos en modo local.")
        else:
            st.success("Datos sincronizados.")

    st.markdown("---")
    st.markdown("### Configuración")
    from thcontrol.config import validate_all_settings

    status = validate_all_settings()
    for name, ok in status.items():
        if name.endswith("_error"):
            continue
        if ok:
            st.success(f"✅ {name}")
        else:
            st.error(f"❌ {name}: {status.get(f'{name}_error')}")

    if context.store.user.is_admin:
        with st.expander("Actividad reciente"):
            for event in context.audit_logger.recent_events[:20]:
                st.text(f"{event.timestamp:%H:%M:%S} {event.event_type.value} {event.description}")


if __name__ == "__main__":
    main()
