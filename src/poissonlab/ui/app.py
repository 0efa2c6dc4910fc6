"""Streamlit explorer for the compound Poisson process.

Run with ``poissonlab ui`` or ``streamlit run src/poissonlab/ui/app.py``.
"""

import logging

import matplotlib.pyplot as plt
import streamlit as st

from poissonlab.analysis.sim_models import InvalidParameterError
from poissonlab.analysis.simulation import compute_theory, format_value, run_simulation
from poissonlab.config import Settings
from poissonlab.visualization.charts import plot_sample_path, plot_terminal_histogram

logger = logging.getLogger(__name__)

settings = Settings()

st.set_page_config(page_title="Compound Poisson Process Explorer", layout="wide")
st.title("Compound Poisson Process Explorer")

# --- Sidebar for Inputs ---
with st.sidebar:
    st.header("Process Parameters")
    lam = st.slider("Poisson Arrival Rate (λ):", settings.lam_min, settings.lam_max,
                    settings.default_lam, settings.lam_step)
    mu = st.slider("Claim Size Rate (μ):", settings.mu_min, settings.mu_max,
                   settings.default_mu, settings.mu_step)
    t_max = st.slider("Max Time (T):", settings.t_max_min, settings.t_max_max,
                      settings.default_t_max, settings.t_max_step)
    num_simulations = st.number_input(
        "No. of Simulations for Histogram:",
        min_value=settings.num_simulations_min,
        max_value=settings.max_simulations,
        value=settings.default_num_simulations,
        step=settings.num_simulations_step,
    )
    resimulate = st.button("Resimulate Path & Distribution", type="primary")

    st.markdown("---")
    theory = compute_theory(lam, mu, t_max)
    st.markdown("**E[S(T)] = λT/μ:**")
    st.text(format_value(theory["mean"]))
    st.markdown("**Var[S(T)] = 2λT/μ²:**")
    st.text(format_value(theory["variance"]))
    show_density = st.checkbox("Overlay exact density", value=False)

# Recompute only on first load or explicit trigger; slider moves alone keep the last result
if resimulate or "result" not in st.session_state:
    try:
        with st.spinner("Simulating..."):
            st.session_state["result"] = run_simulation(
                lam, mu, t_max, int(num_simulations),
                seed=settings.seed,
                arrival_method=settings.arrival_method,
                terminal_sampler=settings.terminal_sampler,
                batch_size=settings.batch_size,
                max_simulations=settings.max_simulations,
                max_expected_arrivals=settings.max_expected_arrivals,
            )
    except InvalidParameterError as e:
        logger.warning(f"Rejected parameters from UI: {e}")
        st.error(str(e))

result = st.session_state.get("result")
if result is None:
    st.info("Adjust the parameters in the sidebar and click 'Resimulate' to see the results.")
    st.stop()

params = result["params"]
tab_path, tab_hist = st.tabs(["Process Path S(t) vs Time", "Final Distribution Histogram"])

with tab_path:
    fig = plot_sample_path(result["path"], params["lam"], params["mu"])
    st.pyplot(fig)
    plt.close(fig)
    if result["path"]["truncated"]:
        st.warning("The arrival batch was exhausted before T; the path is truncated.")

with tab_hist:
    fig = plot_terminal_histogram(
        result["terminal_values"],
        result["theory"]["mean"],
        params["t_max"],
        bins=settings.histogram_bins,
        lam=params["lam"],
        mu=params["mu"],
        show_density=show_density,
    )
    st.pyplot(fig)
    plt.close(fig)
    stats = result["terminal_stats"]
    st.caption(
        f"Empirical mean {format_value(stats['mean'])} | "
        f"empirical variance {format_value(stats['variance'])} | "
        f"P(S(T)=0) {stats['zero_fraction']:.4f} "
        f"(exact {stats['theoretical_zero_prob']:.4f})"
    )
